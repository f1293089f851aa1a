# app/crud/routes_crud.py                                                     # Ruta del archivo dentro del proyecto.

# =================================================================================
# 🎟️ CRUD de Rutas (códigos de un solo uso)
# - get_by_code / exists: lecturas simples por código exacto.
# - insert(): añade la fila (el commit lo decide el emisor, que reintenta colisiones).
# - mark_used_if_unused(): UPDATE condicional atómico (compare-and-set).
# - purge_by_prefix(): borra los datos de prueba (códigos TEST_ y lo ligado a ellos).
# =================================================================================

from typing import Dict, List, Optional           # Tipado para claridad.

from sqlalchemy import update, func               # UPDATE condicional y agregados.
from sqlalchemy.orm import Session                # Sesión de SQLAlchemy.

from app.models import Confirmation, Participant, Route   # Modelos ORM implicados.

TEST_CODE_PREFIX = "TEST_"                        # Prefijo de los códigos sembrados para pruebas.


# ---------------------------------------------------------------------------------
# 🔎 Lecturas
# ---------------------------------------------------------------------------------
def get_by_code(db: Session, code: str) -> Optional[Route]:
    """Devuelve la ruta con el código exacto (tras recortar espacios) o None."""
    if not code:
        return None
    return db.query(Route).filter(Route.code == code.strip()).first()


def exists(db: Session, code: str) -> bool:
    return db.query(Route.id).filter(Route.code == code).first() is not None


def codes_by_participant(db: Session, participant_ids: List[int]) -> Dict[int, str]:
    """Mapa participant_id → code (si hay varias rutas, gana la última)."""
    if not participant_ids:
        return {}
    rows = (
        db.query(Route.participant_id, Route.code)
        .filter(Route.participant_id.in_(participant_ids))
        .order_by(Route.id.asc())
        .all()
    )
    return {pid: code for pid, code in rows}


# ---------------------------------------------------------------------------------
# ✍️ Escrituras
# ---------------------------------------------------------------------------------
def insert(db: Session, code: str, participant_id: Optional[int] = None) -> Route:
    """Añade la ruta a la sesión y hace flush; el llamador hace commit/rollback."""
    route = Route(code=code, participant_id=participant_id, used=False)
    db.add(route)
    db.flush()                                    # La violación de UNIQUE puede aparecer aquí o en commit.
    return route


def mark_used_if_unused(db: Session, code: str) -> bool:
    """
    UPDATE routes SET used = true WHERE code = :code AND used = false.
    Devuelve True solo si esta llamada hizo la transición (1 fila afectada).
    No hace commit: la confirmación se inserta en la misma transacción.
    """
    result = db.execute(
        update(Route)
        .where(Route.code == code, Route.used.is_(False))
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# ---------------------------------------------------------------------------------
# 📊 Estadísticas y limpieza
# ---------------------------------------------------------------------------------
def counts(db: Session) -> Dict[str, int]:
    total = db.query(func.count(Route.id)).scalar() or 0
    used = db.query(func.count(Route.id)).filter(Route.used.is_(True)).scalar() or 0
    return {"total": total, "used": used, "unused": total - used}


def purge_by_prefix(db: Session, prefix: str = TEST_CODE_PREFIX) -> Dict[str, int]:
    """
    Borra las rutas cuyo código empieza por `prefix`, sus confirmaciones y los
    participantes ligados a ellas. Hace commit; devuelve los conteos borrados.
    """
    routes = db.query(Route).filter(Route.code.startswith(prefix, autoescape=True)).all()
    codes = [r.code for r in routes]
    participant_ids = [r.participant_id for r in routes if r.participant_id is not None]

    deleted = {"routes": len(codes), "confirmations": 0, "participants": 0}
    if codes:
        deleted["confirmations"] = (
            db.query(Confirmation).filter(Confirmation.route_code.in_(codes)).delete(synchronize_session=False)
        )
        for r in routes:
            db.delete(r)
        db.flush()                                # Rutas fuera antes que sus participantes (FK).
    if participant_ids:
        deleted["participants"] = (
            db.query(Participant).filter(Participant.id.in_(participant_ids)).delete(synchronize_session=False)
        )
    db.commit()
    return deleted
