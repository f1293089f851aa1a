# app/crud/confirmations_crud.py

# =================================================================================
# ✅ CRUD de Confirmaciones
# La fila se crea dentro de la misma transacción que marca la ruta como usada;
# `webhook_sent` se actualiza después, en un commit aparte.
# =================================================================================

from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.models import Confirmation


def create(db: Session, route_code: str, name: str, phone: str, email: Optional[str] = None) -> Confirmation:
    """Añade la confirmación y hace flush para obtener el id (sin commit)."""
    confirmation = Confirmation(route_code=route_code, name=name, phone=phone, email=email, webhook_sent=False)
    db.add(confirmation)
    db.flush()
    return confirmation


def get_by_id(db: Session, confirmation_id: int) -> Optional[Confirmation]:
    return db.get(Confirmation, confirmation_id)


def list_all(db: Session, limit: Optional[int] = None) -> List[Confirmation]:
    q = db.query(Confirmation).order_by(Confirmation.confirmed_at.desc(), Confirmation.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def mark_webhook_sent(db: Session, confirmation_id: int) -> None:
    """Marca la entrega y hace commit. Idempotente."""
    db.execute(
        update(Confirmation)
        .where(Confirmation.id == confirmation_id)
        .values(webhook_sent=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def counts(db: Session) -> Dict[str, int]:
    total = db.query(func.count(Confirmation.id)).scalar() or 0
    sent = db.query(func.count(Confirmation.id)).filter(Confirmation.webhook_sent.is_(True)).scalar() or 0
    return {"total": total, "webhook_sent": sent, "webhook_pending": total - sent}

