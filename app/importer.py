# app/importer.py
# =================================================================================
# 📥 Importador de participantes (lote → normalizar → deduplicar → insertar → ruta)
# ---------------------------------------------------------------------------------
# Cada registro se procesa y se confirma (commit) antes del siguiente, así un
# duplicado dentro del mismo lote ya ve la fila anterior. Un error en una fila
# nunca aborta el lote: se registra y se continúa.
# =================================================================================

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.crud import participants_crud
from app.errors import DuplicateError, WorkflowError
from app.issuer import issue_route
from app.utils.masking import mask_document, mask_phone
from app.utils.normalize import normalize_record

MAX_REPORTED_FAILURES = 100


@dataclass
class ImportSummary:
    processed: int = 0
    imported: int = 0
    duplicates: int = 0
    errors: int = 0
    route_failures: int = 0                      # Guardados (cuentan en imported) pero sin código.
    failures: List[Dict[str, Any]] = field(default_factory=list)
    duplicate_details: List[Dict[str, Any]] = field(default_factory=list)
    results: List[Dict[str, Any]] = field(default_factory=list)

    def add_failure(self, row: int, name, reason: str) -> None:
        self.errors += 1
        self._report(row, name, reason)

    def add_route_failure(self, row: int, name, reason: str) -> None:
        """El participante ya cuenta como importado; solo falta su código."""
        self.route_failures += 1
        self._report(row, name, reason)

    def _report(self, row: int, name, reason: str) -> None:
        if len(self.failures) < MAX_REPORTED_FAILURES:
            self.failures.append({"row": row, "name": name, "reason": reason})

    def add_duplicate(self, row: int, name, existing_id, matched_on) -> None:
        self.duplicates += 1
        if len(self.duplicate_details) < MAX_REPORTED_FAILURES:
            self.duplicate_details.append(
                {"row": row, "name": name, "existing_id": existing_id, "matched_on": list(matched_on)}
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "imported": self.imported,
            "duplicates": self.duplicates,
            "errors": self.errors,
            "route_failures": self.route_failures,
            "failures": self.failures,
            "duplicate_details": self.duplicate_details,
            "results": self.results,
        }


def _check_duplicate(db: Session, record: Dict[str, Any]) -> None:
    existing, matched_on = participants_crud.find_duplicate(db, record.get("national_id"), record.get("phone"))
    if existing is not None:
        raise DuplicateError("Participante já cadastrado", existing_id=existing.id, matched_on=matched_on)


def import_batch(db: Session, raw_records: Iterable[Mapping[str, Any]], *, issue_routes: bool = True) -> ImportSummary:
    """
    Importa una secuencia de registros crudos (claves del cuestionario o canónicas).
    Devuelve un ImportSummary; nunca lanza por una fila individual.
    """
    summary = ImportSummary()

    for row, raw in enumerate(raw_records, start=1):
        summary.processed += 1
        try:
            record = normalize_record(raw or {})
        except (TypeError, ValueError, AttributeError) as e:
            summary.add_failure(row, None, f"Registro ilegível: {e}")
            continue
        name = record.get("name")

        # --- Campos obligatorios ---
        if not name or not record.get("phone"):
            summary.add_failure(row, name, "Nome e telefone são obrigatórios")
            continue

        # --- Duplicado + inserción (commit por registro) ---
        try:
            _check_duplicate(db, record)
            participant = participants_crud.create(db, record)
            db.commit()
            participant_id = participant.id
        except DuplicateError as e:
            # Dedup OR: un teléfono compartido (mismo hogar) también bloquea; se deja visible en el log.
            logger.info(
                "IMPORT → duplicado | row={} | existing_id={} | matched_on={} | phone={} | doc={}",
                row, e.existing_id, ",".join(e.matched_on), mask_phone(record.get("phone")),
                mask_document(record.get("national_id")),
            )
            summary.add_duplicate(row, name, e.existing_id, e.matched_on)
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("IMPORT → error de BD | row={} | {}", row, e)
            summary.add_failure(row, name, f"Erro de armazenamento: {e.__class__.__name__}")
            continue

        summary.imported += 1
        code = None
        if issue_routes:
            try:
                code = issue_route(db, participant_id)
            except WorkflowError as e:
                # El participante ya está guardado; issue_missing_routes lo repara.
                logger.error("IMPORT → participante sin ruta | id={} | {}", participant_id, e.message)
                summary.add_route_failure(row, name, f"Participante {participant_id} salvo sem código: {e.message}")
                summary.results.append({"row": row, "participant_id": participant_id, "name": name, "code": None})
                continue
        summary.results.append({"row": row, "participant_id": participant_id, "name": name, "code": code})

    logger.info(
        "IMPORT → fin | processed={} | imported={} | duplicates={} | errors={} | route_failures={}",
        summary.processed, summary.imported, summary.duplicates, summary.errors, summary.route_failures,
    )
    return summary


# ---------------------------------------------------------------------------------
# 📄 Lectura de archivos para el CLI (pandas)
# ---------------------------------------------------------------------------------
def read_table(path: str) -> List[Dict[str, Any]]:
    """Carga .json / .csv / .xlsx / .xls como lista de dicts con valores string (NaN → None)."""
    ext = os.path.splitext(path)[1].lower()
    if ext == ".json":
        df = pd.read_json(path, dtype=str)
    elif ext == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    elif ext in (".xlsx", ".xls"):
        df = pd.read_excel(path, dtype=str)
    else:
        raise ValueError(f"Formato no soportado: {ext} (use .json, .csv o .xlsx)")

    df = df.astype(object).where(pd.notna(df), None)
    logger.info("IMPORT → {} filas leídas de {}", len(df), os.path.basename(path))
    return df.to_dict(orient="records")
