# app/crud/participants_crud.py                                               # Ruta del archivo dentro del proyecto.

# =================================================================================
# 🧑‍🤝‍🧑 CRUD de Participantes importados
# - find_duplicate(): unicidad lógica por documento (si no vacío) OR teléfono.
# - create(): inserta un participante normalizado (sin commit).
# - Listados para el panel: pendientes, sin ruta, listos para envío por proyecto.
# =================================================================================

from typing import Any, Dict, List, Optional, Tuple   # Tipado para claridad.

from sqlalchemy import func, or_                      # Agregados y OR para el filtro de duplicados.
from sqlalchemy.orm import Session                    # Sesión de SQLAlchemy.

from app.models import Participant, Route             # Modelos ORM implicados.

PARTICIPANT_FIELDS = (
    "name", "phone", "email", "national_id", "gender", "age", "city", "neighborhood",
    "retired", "extension_project", "other_project", "data_consent", "difficulties",
    "submitted_at",
)


# ---------------------------------------------------------------------------------
# 🔎 Búsquedas
# ---------------------------------------------------------------------------------
def get_by_id(db: Session, participant_id: int) -> Optional[Participant]:
    return db.get(Participant, participant_id)


def find_duplicate(
    db: Session, national_id: Optional[str], phone: Optional[str]
) -> Tuple[Optional[Participant], List[str]]:
    """
    Devuelve (participante_existente, campos_que_coinciden).
    Un documento vacío nunca cuenta como coincidencia; el teléfono sí se compara
    siempre que exista (teléfonos compartidos en un mismo hogar también cuentan).
    """
    conditions = []
    if national_id:
        conditions.append(Participant.national_id == national_id)
    if phone:
        conditions.append(Participant.phone == phone)
    if not conditions:
        return None, []

    existing = db.query(Participant).filter(or_(*conditions)).order_by(Participant.id.asc()).first()
    if existing is None:
        return None, []

    matched_on = []
    if national_id and existing.national_id == national_id:
        matched_on.append("national_id")
    if phone and existing.phone == phone:
        matched_on.append("phone")
    return existing, matched_on


def find_by_code(db: Session, code: str) -> Optional[Participant]:
    """Participante ligado a la ruta `code` (None si la ruta no existe o es independiente)."""
    route = db.query(Route).filter(Route.code == (code or "").strip()).first()
    if route is None or route.participant_id is None:
        return None
    return db.get(Participant, route.participant_id)


# ---------------------------------------------------------------------------------
# ✍️ Escrituras
# ---------------------------------------------------------------------------------
def create(db: Session, data: Dict[str, Any]) -> Participant:
    """Crea el participante con los campos conocidos; ignora claves extra. Sin commit."""
    participant = Participant(**{k: data.get(k) for k in PARTICIPANT_FIELDS})
    db.add(participant)
    db.flush()
    return participant


# ---------------------------------------------------------------------------------
# 📋 Listados
# ---------------------------------------------------------------------------------
def list_without_route(db: Session) -> List[Participant]:
    """Participantes sin ninguna ruta asociada (p. ej. tras un fallo de emisión)."""
    with_route = db.query(Route.participant_id).filter(Route.participant_id.isnot(None))
    return (
        db.query(Participant)
        .filter(Participant.id.notin_(with_route))
        .order_by(Participant.id.asc())
        .all()
    )


def list_for_sending(db: Session, project: Optional[str] = None) -> List[Tuple[Participant, Route]]:
    """
    Participantes con ruta aún no usada, opcionalmente filtrados por proyecto
    de extensión (coincidencia parcial, sin distinguir mayúsculas).
    """
    q = (
        db.query(Participant, Route)
        .join(Route, Route.participant_id == Participant.id)
        .filter(Route.used.is_(False))
    )
    if project:
        q = q.filter(func.lower(Participant.extension_project).contains(project.strip().lower()))
    return q.order_by(Participant.name.asc(), Participant.id.asc()).all()


def list_pending(db: Session) -> List[Tuple[Participant, Route]]:
    """Participantes cuya ruta sigue sin responder."""
    return list_for_sending(db)


def find_selected(db: Session, participant_ids: List[int]) -> List[Participant]:
    if not participant_ids:
        return []
    return (
        db.query(Participant)
        .filter(Participant.id.in_(participant_ids))
        .order_by(Participant.id.asc())
        .all()
    )


def count(db: Session) -> int:
    return db.query(func.count(Participant.id)).scalar() or 0

