# scripts/import_participants.py
# =============================================================================
# 🚚 Importador masivo de participantes (archivo del formulario → backend).
# - Lee .json / .csv / .xlsx con pandas (read_table) y vista previa normalizada.
# - Por defecto envía en lotes a:  POST /api/admin/import-participants
#   (requiere ADMIN_API_KEY, cabecera x-admin-key).
# - Con --local importa directamente en la BD configurada por DATABASE_URL.
# =============================================================================

import os
import sys
import json
import argparse
from pathlib import Path

import requests
from dotenv import load_dotenv
from loguru import logger

# Añadir la raíz del proyecto al path ANTES de importar `app`.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

load_dotenv()

from app.core.config import env_int                     # noqa: E402
from app.importer import read_table                    # noqa: E402
from app.utils.normalize import normalize_record        # noqa: E402

API_BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")
ENDPOINT = f"{API_BASE_URL.rstrip('/')}/api/admin/import-participants"

# Bitácora en archivo, además de la consola.
logger.add(str(PROJECT_ROOT / "logs" / "import_{time:YYYY-MM-DD}.log"), rotation="5 MB", retention="30 days", encoding="utf-8")


def _post_batch(records: list[dict], timeout: int = 120) -> dict:
    """Envía un lote al endpoint admin y devuelve el JSON de respuesta (o error claro)."""
    headers = {"Content-Type": "application/json", "x-admin-key": ADMIN_API_KEY}
    resp = requests.post(ENDPOINT, headers=headers, data=json.dumps({"participants": records}), timeout=timeout)
    if resp.status_code != 200:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        raise RuntimeError(f"HTTP {resp.status_code} - {detail}")
    return resp.json()


def _import_local(records: list[dict]) -> dict:
    """Importa en la BD local reutilizando el mismo pipeline que el endpoint."""
    from app.db import SessionLocal
    from app.importer import import_batch

    db = SessionLocal()
    try:
        return import_batch(db, records).to_dict()
    finally:
        db.close()


def _preview(records: list[dict]) -> list[dict]:
    preview = []
    for raw in records[:3]:
        rec = normalize_record(raw)
        rec["submitted_at"] = rec["submitted_at"].isoformat() if rec["submitted_at"] else None
        preview.append(rec)
    return preview


def main():
    parser = argparse.ArgumentParser(description="Importador masivo de participantes.")
    parser.add_argument("file", help="Ruta al archivo .json, .csv o .xlsx")
    parser.add_argument("--batch", type=int, default=env_int("IMPORT_BATCH_SIZE", 200),
                        help="Tamaño de lote (por defecto IMPORT_BATCH_SIZE o 200)")
    parser.add_argument("--local", action="store_true", help="Importa directo en la BD (sin pasar por la API)")
    parser.add_argument("--dry-run", action="store_true", help="Solo lee y muestra vista previa; no importa")
    args = parser.parse_args()

    print(f"📥 Cargando archivo: {args.file}")
    try:
        records = read_table(args.file)
    except (OSError, ValueError) as e:
        print(f"❌ Error al leer el archivo: {e}")
        sys.exit(1)

    if not records:
        print("⛔ No hay registros para importar.")
        sys.exit(1)

    print(f"📦 Registros leídos: {len(records)}")

    if args.dry_run:
        print("🧪 DRY-RUN activo: no se importará nada.")
        print("🔎 Vista previa normalizada (primeros 3 registros):")
        print(json.dumps(_preview(records), indent=2, ensure_ascii=False))
        sys.exit(0)

    if args.local:
        summary = _import_local(records)
        print("\n✅ Resumen de importación (local):")
        print(json.dumps({k: summary[k] for k in ("processed", "imported", "duplicates", "errors", "route_failures")}, indent=2))
        for f in summary["failures"]:
            print(f"   ✗ Fila {f['row']} ({f['name']}): {f['reason']}")
        return

    if not ADMIN_API_KEY:
        print("❌ ADMIN_API_KEY no está definida (.env).")
        sys.exit(1)

    batch_size = max(1, args.batch)
    totals = {"processed": 0, "imported": 0, "duplicates": 0, "errors": 0, "route_failures": 0}
    failures: list[str] = []

    print(f"➡️  Importando en lotes de {batch_size} hacia {ENDPOINT}")
    for i in range(0, len(records), batch_size):
        chunk = records[i:i + batch_size]
        n = i // batch_size + 1
        try:
            result = _post_batch(chunk)
        except (requests.RequestException, RuntimeError) as e:
            msg = f"Lote {n} (filas {i + 1}-{i + len(chunk)}): {e}"
            logger.error(msg)
            failures.append(msg)
            totals["errors"] += len(chunk)
            continue
        for key in totals:
            totals[key] += int(result.get(key, 0))
        for f in result.get("failures", []):
            failures.append(f"Fila {i + f['row']} ({f.get('name')}): {f['reason']}")
        print(f"   ✓ Lote {n}: +{result.get('imported', 0)} importados, "
              f"{result.get('duplicates', 0)} duplicados, {result.get('errors', 0)} errores")

    print("\n✅ Resumen de importación:")
    print(json.dumps(totals, indent=2))
    if failures:
        print("\n⚠️  Hubo errores. Detalle:")
        print(" - " + "\n - ".join(failures))


if __name__ == "__main__":
    main()
