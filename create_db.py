# create_db.py

# =================================================================================
# 🏗️ SCRIPT DE CREACIÓN DE LA BASE DE DATOS
# ---------------------------------------------------------------------------------
# Inicializa la base de datos: crea todas las tablas definidas en los modelos y
# siembra las plantillas de mensajes por defecto. Pensado para desarrollo; en
# producción el esquema lo gestiona Alembic (migrations/).
#   python create_db.py           → crea tablas que falten + plantillas
#   python create_db.py --reset   → BORRA todo y vuelve a crear (reset completo)
# =================================================================================

import argparse

from dotenv import load_dotenv

load_dotenv()

from app.db import engine, Base, SessionLocal  # noqa: E402

# Importar los modelos los "registra" en los metadatos de `Base`; sin esto
# `create_all` no sabría qué tablas crear.
from app import models  # noqa: E402,F401
from app.crud import templates_crud  # noqa: E402


def create_database_tables(reset: bool = False) -> None:
    """Crea (o recrea con reset=True) todas las tablas asociadas con `Base`."""
    if reset:
        print("⚠️  Eliminando todas las tablas...")
        Base.metadata.drop_all(bind=engine)
    print("Creando tablas en la base de datos...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seeded = templates_crud.seed_defaults(db)
    finally:
        db.close()
    print(f"✔️ Base de datos lista. Plantillas sembradas: {seeded}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Crea las tablas de la base de datos.")
    parser.add_argument("--reset", action="store_true", help="Borra todas las tablas antes de crearlas")
    args = parser.parse_args()
    create_database_tables(reset=args.reset)
