# app/db.py
# =================================================================================
# 🗄️ CONFIGURACIÓN Y CONEXIÓN A LA BASE DE DATOS
# ---------------------------------------------------------------------------------
# Este módulo centraliza la conexión a la base de datos con SQLAlchemy, con
# lógica condicional para soportar tanto SQLite (desarrollo/tests) como
# PostgreSQL (producción). Las tablas de rutas, confirmaciones, participantes y
# plantillas de mensajes cuelgan de `Base`.
# =================================================================================

# --- Importaciones de Módulos ---
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from loguru import logger

# --- Lógica de URL de la Base de Datos ---
DATABASE_URL = os.getenv("DATABASE_URL", "").strip()

# 1. Lee la variable para forzar un motor de BD específico (por defecto 'postgres').
FORCE_DB = os.getenv("FORCE_DB", "postgres").strip().lower()

# 2. Detecta si la variable de entorno es un placeholder de Railway sin resolver.
if DATABASE_URL.startswith("${{") and DATABASE_URL.endswith("}}"):
    logger.warning("DATABASE_URL parece un placeholder sin resolver: {}", DATABASE_URL)
    DATABASE_URL = ""

# 3. Si la URL está vacía, se aplica la política de seguridad.
if not DATABASE_URL:
    if FORCE_DB == "postgres":
        # Si se exige PostgreSQL, se detiene el arranque para evitar usar una BD incorrecta.
        raise RuntimeError(
            "FATAL: DATABASE_URL no está disponible y FORCE_DB=postgres. "
            "Se aborta para evitar un fallback accidental a SQLite en producción."
        )
    logger.warning("DATABASE_URL está vacía. Usando fallback a SQLite local.")
    current_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.abspath(os.path.join(current_dir, ".."))
    db_path = os.path.join(project_root, "confirmations.db")
    DATABASE_URL = f"sqlite:///{db_path}"


def build_engine(url: str):
    """Crea el engine con las opciones adecuadas para cada motor."""
    if url.startswith("sqlite"):
        # SQLite: `check_same_thread` para workers de FastAPI y `timeout` para esperar locks de escritura.
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            pool_pre_ping=True,
        )
    return create_engine(url, pool_pre_ping=True)


# --- Creación del Engine ---
engine = build_engine(DATABASE_URL)
logger.info("DB in use → {}", "SQLite" if DATABASE_URL.startswith("sqlite") else "PostgreSQL (o no-SQLite)")

# --- Fábrica de Sesiones y Base Declarativa ---
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Dependencia de FastAPI para inyectar una sesión de BD por petición."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =================================================================================
# 🔎 UTILIDAD: LOGUEAR LA RUTA REAL DE LA BASE DE DATOS EN STARTUP
# =================================================================================
def log_db_path_on_startup() -> None:
    """Escribe en los logs qué motor de base de datos se está utilizando al arrancar."""
    url = engine.url
    logger.info("DB driver in use → {}", url.drivername)
    if url.drivername.startswith("sqlite"):
        db_file = getattr(url, "database", None)
        abs_path = os.path.abspath(db_file) if db_file else "<memory>"
        logger.info("DB path → {} (abs={})", db_file, abs_path)
