#migrations/env.py
from logging.config import fileConfig
import os
import sys

from alembic import context
from dotenv import load_dotenv
from loguru import logger

# ---- Asegurar que podamos importar el paquete "app" ----
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# DATABASE_URL / FORCE_DB se leen al importar app.db: el .env debe cargarse antes.
load_dotenv(os.path.join(ROOT_DIR, ".env"))

from app.db import engine, Base   # noqa: E402
from app import models            # noqa: E402,F401  registra rutas, participantes, confirmaciones y plantillas

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# SQLite no soporta ALTER COLUMN/DROP COLUMN: Alembic recrea la tabla en modo batch.
IS_SQLITE = engine.url.drivername.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emite el SQL sin conectar (URL tomada del engine real)."""
    context.configure(
        url=str(engine.url),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=IS_SQLITE,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Ejecuta contra la BD usando el Engine del proyecto."""
    logger.info("ALEMBIC → migrando {}", engine.url.render_as_string(hide_password=True))
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            render_as_batch=IS_SQLITE,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
