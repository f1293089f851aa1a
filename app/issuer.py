# app/issuer.py
# =================================================================================
# 🎟️ Emisor de rutas (códigos únicos de un solo uso)
# ---------------------------------------------------------------------------------
# Bucle acotado: generar candidato → si ya existe, regenerar → insertar y commit.
# La restricción UNIQUE de routes.code es la fuente de verdad: si dos emisores
# concurrentes eligen el mismo código, el segundo commit lanza IntegrityError,
# se hace rollback y cuenta como colisión.
# =================================================================================

from typing import Callable, Dict, List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.crud import participants_crud, routes_crud
from app.errors import CodeSpaceExhausted, StorageError, WorkflowError
from app.utils.codes import generate_code

MAX_CODE_ATTEMPTS = 10_000


def issue_route(
    db: Session,
    participant_id: Optional[int] = None,
    *,
    generate: Callable[[], str] = generate_code,
    max_attempts: int = MAX_CODE_ATTEMPTS,
) -> str:
    """
    Crea una ruta nueva (used=False) y devuelve su código.

    - `generate` se inyecta en tests para forzar colisiones.
    - Tras `max_attempts` colisiones → CodeSpaceExhausted (nunca un bucle infinito).
    - Cualquier otro error de BD → rollback + StorageError.
    """
    collisions = 0
    for _ in range(max_attempts):
        candidate = generate()
        try:
            if routes_crud.exists(db, candidate):
                collisions += 1
                continue
            routes_crud.insert(db, candidate, participant_id)
            db.commit()
        except IntegrityError:
            # Otro emisor ganó la carrera con el mismo código: se reintenta.
            db.rollback()
            collisions += 1
            logger.debug("ISSUER → colisión en commit, reintentando | attempt={}", collisions)
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("ISSUER → error de BD | participant_id={} | {}", participant_id, e)
            raise StorageError("No fue posible guardar la ruta") from e

        if collisions:
            logger.info("ISSUER → código emitido tras {} colisiones | participant_id={}", collisions, participant_id)
        else:
            logger.debug("ISSUER → código emitido | participant_id={}", participant_id)
        return candidate

    logger.error("ISSUER → espacio de códigos agotado tras {} intentos", max_attempts)
    raise CodeSpaceExhausted(f"No se encontró un código libre tras {max_attempts} intentos")


def issue_routes(db: Session, count: int, **kwargs) -> List[str]:
    """Emite `count` rutas independientes (sin participante)."""
    return [issue_route(db, None, **kwargs) for _ in range(max(0, int(count)))]


def issue_missing_routes(db: Session, **kwargs) -> List[Dict]:
    """
    Emite una ruta para cada participante que no tenga ninguna.
    Un fallo en un participante no detiene al resto; cada uno devuelve su resultado.
    """
    results: List[Dict] = []
    pending = participants_crud.list_without_route(db)
    logger.info("ISSUER → participantes sin ruta: {}", len(pending))

    for p in pending:
        pid, name = p.id, p.name          # Se leen antes: un rollback posterior expira el objeto.
        try:
            code = issue_route(db, pid, **kwargs)
            results.append({"participant_id": pid, "name": name, "code": code, "success": True})
        except WorkflowError as e:
            logger.warning("ISSUER → fallo al emitir | participant_id={} | {}", pid, e.message)
            results.append({"participant_id": pid, "name": name, "code": None, "success": False, "error": e.message})
    return results
