# app/main.py                                                                                   # Ruta y nombre del archivo principal.

# ================================================================
# 🧱 MODO MANTENIMIENTO (Control temporal desde variable de entorno)
# ================================================================

import os

# Si la variable MAINTENANCE_MODE=1 está activa, se crea una app mínima
if os.getenv("MAINTENANCE_MODE") == "1":
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse
    from loguru import logger

    app = FastAPI(title="API en mantenimiento")

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"])
    async def maintenance_page(path: str):
        """Responde a cualquier ruta y método con mensaje neutro de mantenimiento."""
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "🌙 Sistema em manutenção. Tente novamente mais tarde."},
        )

    logger.warning("🚧 API arrancada en MODO MANTENIMIENTO. Todos los endpoints reales están desactivados.")
else:
    # =================================================================================
    # 🧠 NÚCLEO DE LA APLICACIÓN API (FastAPI)
    # ---------------------------------------------------------------------------------
    # - Crea la instancia de FastAPI y configura CORS
    # - Traduce WorkflowError a {success:false, message} con su status
    # - Siembra plantillas y crea el cliente del relay en el arranque
    # - Registra routers (confirm público, admin protegido)
    # =================================================================================

    from pathlib import Path                                                                        # Ruta al .env.

    from dotenv import load_dotenv                                                                  # Carga variables de entorno.
    from fastapi import FastAPI, Request
    from fastapi.exceptions import RequestValidationError
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse
    from loguru import logger
    from sqlalchemy.exc import SQLAlchemyError

    env_path = Path('.') / '.env'
    load_dotenv(dotenv_path=env_path)

    from app.core.config import env_list, is_dry_run                                                # Helpers de configuración.

    logger.info(
        "[BOOT] DRY_RUN={} | RELAY_SET={} | ADMIN_KEY_SET={}",
        is_dry_run(),
        "yes" if os.getenv("RELAY_WEBHOOK_URL") else "no",
        "yes" if os.getenv("ADMIN_API_KEY") else "no",
    )

    from app.db import SessionLocal, log_db_path_on_startup                                         # Sesiones y traza de BD.
    from app.crud import templates_crud                                                             # Siembra de plantillas.
    from app.errors import WorkflowError                                                            # Base de errores del núcleo.
    from app.relay import relay_from_env                                                            # Cliente del relay.
    from app.routers import admin, confirm                                                          # Routers reales.

    app = FastAPI(
        title="API de Convites e Confirmações",
        description="Backend para emitir códigos de convite, registrar confirmações e enviar mensagens",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=env_list("CORS_ORIGINS", ["http://localhost:3000", "http://127.0.0.1:3000"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # El esquema en producción lo gestiona Alembic; create_db.py sirve para desarrollo.

    # -----------------------------------------------------------------------------
    # 🚨 Traducción de errores a JSON uniforme
    # -----------------------------------------------------------------------------
    @app.exception_handler(WorkflowError)
    async def _workflow_error_handler(request: Request, exc: WorkflowError):
        if exc.status_code >= 500:
            logger.error("API → {} {} | {}: {}", request.method, request.url.path, type(exc).__name__, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Requisição inválida"))
        return JSONResponse(status_code=400, content={"success": False, "message": message})

    # -----------------------------------------------------------------------------
    # 🚀 Arranque
    # -----------------------------------------------------------------------------
    @app.on_event("startup")
    def _startup() -> None:
        log_db_path_on_startup()
        app.state.relay = relay_from_env()                                                          # Un TokenCache compartido por proceso.
        db = SessionLocal()
        try:
            templates_crud.seed_defaults(db)
        except SQLAlchemyError as e:                                                                # Tablas aún no migradas: no bloquea el arranque.
            db.rollback()
            logger.warning("[BOOT] No se pudieron sembrar plantillas: {}", e)
        finally:
            db.close()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(confirm.router)
    app.include_router(admin.router)
