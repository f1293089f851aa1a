# scripts/seed_test_data.py
# =============================================================================
# 🧪 Datos de prueba: siembra participantes ficticios con códigos TEST_*.
#   python scripts/seed_test_data.py           → crea N participantes de prueba
#   python scripts/seed_test_data.py --purge   → elimina todo lo marcado TEST_
# Los mismos datos se borran también con DELETE /api/admin/test-data.
# =============================================================================

import sys
import argparse
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

load_dotenv()

from app.crud import participants_crud, routes_crud      # noqa: E402
from app.db import SessionLocal                           # noqa: E402
from app.issuer import issue_route                        # noqa: E402
from app.utils.codes import generate_code                 # noqa: E402

SAMPLE_NAMES = [
    "Maria das Graças Silva",
    "José Ribeiro de Sousa",
    "Antônia Pereira Lima",
    "Francisco Alves Costa",
    "Raimunda Oliveira",
]


def make_test_code() -> str:
    """Código con prefijo TEST_ para poder purgarlo sin tocar datos reales."""
    return routes_crud.TEST_CODE_PREFIX + generate_code()


def seed(count: int) -> list[dict]:
    db = SessionLocal()
    created = []
    try:
        for i in range(count):
            name = SAMPLE_NAMES[i % len(SAMPLE_NAMES)]
            participant = participants_crud.create(db, {
                "name": f"{name} (teste {i + 1})",
                "phone": f"8699900{i:04d}",
                "city": "Teresina",
                "extension_project": "Projeto Teste",
                "data_consent": "Sim",
            })
            db.commit()
            code = issue_route(db, participant.id, generate=make_test_code)
            created.append({"participant_id": participant.id, "code": code})
            logger.info("SEED → participante de prueba | id={} | code={}", participant.id, code)
    finally:
        db.close()
    return created


def purge() -> dict:
    db = SessionLocal()
    try:
        return routes_crud.purge_by_prefix(db)
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Siembra o elimina datos de prueba (códigos TEST_).")
    parser.add_argument("--count", type=int, default=5, help="Participantes a crear (por defecto 5)")
    parser.add_argument("--purge", action="store_true", help="Elimina los datos de prueba en lugar de crearlos")
    args = parser.parse_args()

    if args.purge:
        deleted = purge()
        print(f"🧹 Eliminados: {deleted['routes']} rutas, {deleted['confirmations']} confirmaciones, "
              f"{deleted['participants']} participantes.")
        return

    created = seed(max(0, args.count))
    print(f"🌱 {len(created)} participantes de prueba creados:")
    for item in created:
        print(f"   • id={item['participant_id']}  code={item['code']}")


if __name__ == "__main__":
    main()
