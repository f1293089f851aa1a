# scripts/check_participants.py
# =============================================================================
# 🔎 Diagnóstico rápido de la BD de participantes.
# - Totales de participantes, rutas y confirmaciones.
# - Participantes sin ruta (se reparan con --fix → issue_missing_routes).
# - Posibles duplicados por teléfono compartido.
# =============================================================================

import sys
import argparse
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

load_dotenv()

from sqlalchemy import func                               # noqa: E402

from app.crud import confirmations_crud, participants_crud, routes_crud   # noqa: E402
from app.db import SessionLocal                           # noqa: E402
from app.issuer import issue_missing_routes               # noqa: E402
from app.models import Participant                        # noqa: E402
from app.utils.masking import mask_phone                  # noqa: E402


def shared_phones(db, limit: int = 20):
    """Teléfonos que aparecen en más de un participante (p. ej. importados antes del dedup)."""
    return (
        db.query(Participant.phone, func.count(Participant.id))
        .group_by(Participant.phone)
        .having(func.count(Participant.id) > 1)
        .limit(limit)
        .all()
    )


def main():
    parser = argparse.ArgumentParser(description="Diagnóstico de participantes.")
    parser.add_argument("--fix", action="store_true", help="Emite rutas para participantes sin código")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        routes = routes_crud.counts(db)
        confirmations = confirmations_crud.counts(db)
        print(f"👥 Participantes: {participants_crud.count(db)}")
        print(f"🎟️  Rutas: {routes['total']} (usadas {routes['used']}, libres {routes['unused']})")
        print(f"✅ Confirmaciones: {confirmations['total']} (acuse pendiente {confirmations['webhook_pending']})")

        missing = participants_crud.list_without_route(db)
        print(f"\n⚠️  Sin ruta: {len(missing)}")
        for p in missing[:20]:
            print(f"   • id={p.id}  {p.name}  tel={mask_phone(p.phone)}")

        dupes = shared_phones(db)
        if dupes:
            print(f"\n📞 Teléfonos compartidos: {len(dupes)}")
            for phone, n in dupes:
                print(f"   • {mask_phone(phone)} → {n} participantes")

        if args.fix and missing:
            results = issue_missing_routes(db)
            ok = sum(1 for r in results if r["success"])
            print(f"\n🛠️  Rutas emitidas: {ok}/{len(results)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
