# app/workflow.py
# =================================================================================
# ✅ Flujo de confirmación / recusa de una ruta
# ---------------------------------------------------------------------------------
# Estados: UNUSED → USED (terminal). La transición se hace con un UPDATE
# condicional (WHERE used = false): de N envíos concurrentes con el mismo código
# exactamente uno la consigue. La confirmación se inserta en la MISMA transacción.
# Tras el commit se envía el acuse (best-effort): un fallo del relay no deshace
# nada y solo deja webhook_sent = false para un reenvío posterior.
# =================================================================================

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.crud import confirmations_crud, participants_crud, routes_crud, templates_crud
from app.errors import AlreadyUsedError, NotFoundError, StorageError, ValidationError, WorkflowError
from app.models import TemplateTypeEnum
from app.notifier import DispatchOutcome, NotificationDispatcher
from app.utils.masking import mask_email, mask_phone
from app.utils.normalize import only_digits

DECISIONS = ("confirm", "decline")


class RouteState(str, enum.Enum):
    UNUSED = "unused"
    USED = "used"


# Transiciones permitidas: USED no tiene salida.
ALLOWED = {
    RouteState.UNUSED: {RouteState.USED},
    RouteState.USED: set(),
}


def state_of(route) -> RouteState:
    return RouteState.USED if route.used else RouteState.UNUSED


def assert_transition(old: RouteState, new: RouteState) -> None:
    if new not in ALLOWED.get(old, set()):
        raise AlreadyUsedError("Este código já foi utilizado")


@dataclass
class WorkflowResult:
    success: bool
    message: str
    code: str
    decision: str
    confirmation_id: Optional[int] = None
    notification: Optional[DispatchOutcome] = None


def _clean_phone(phone: str) -> str:
    """Solo dígitos si hay alguno; si no, el texto recortado tal cual."""
    digits = only_digits(phone)
    return digits or phone.strip()


def submit_response(
    db: Session,
    code: str,
    name: str,
    phone: str,
    email: Optional[str] = None,
    decision: str = "confirm",
    *,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> WorkflowResult:
    """
    Registra la respuesta del participante para `code`.

    Errores (sin mutar la BD): ValidationError, NotFoundError, AlreadyUsedError.
    StorageError si falla el commit (se hace rollback y se propaga).
    """
    # --- 1) Validación (antes de tocar la BD) ---
    name = (name or "").strip()
    phone = (phone or "").strip()
    email = (email or "").strip().lower() or None
    decision = (decision or "").strip().lower()
    code = (code or "").strip()

    if not name or not phone:
        raise ValidationError("Nome e telefone são obrigatórios")
    if decision not in DECISIONS:
        raise ValidationError("Decisão inválida: use 'confirm' ou 'decline'")

    # --- 2) Existencia y estado actual ---
    route = routes_crud.get_by_code(db, code)
    if route is None:
        raise NotFoundError("Código não encontrado")
    assert_transition(state_of(route), RouteState.USED)
    code = route.code

    # --- 3) Compare-and-set atómico + inserción de la confirmación ---
    confirmation_id = None
    try:
        if not routes_crud.mark_used_if_unused(db, code):
            db.rollback()
            logger.info("WORKFLOW → CAS perdido (ya usado) | code={}", code)
            raise AlreadyUsedError("Este código já foi utilizado")
        if decision == "confirm":
            confirmation = confirmations_crud.create(db, code, name, _clean_phone(phone), email)
            confirmation_id = confirmation.id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("WORKFLOW → error de BD | code={} | {}", code, e)
        raise StorageError("Não foi possível registrar a resposta") from e

    logger.info(
        "WORKFLOW → {} registrada | code={} | phone={} | email={} | confirmation_id={}",
        decision, code, mask_phone(phone), mask_email(email), confirmation_id,
    )

    # --- 4) Acuse best-effort (fuera de la transacción) ---
    notification = None
    if dispatcher is not None:
        notification = _notify(db, dispatcher, code, name, _clean_phone(phone), decision, confirmation_id)

    message = (
        "Presença confirmada com sucesso!" if decision == "confirm"
        else "Resposta registrada. Obrigado por nos avisar!"
    )
    return WorkflowResult(True, message, code, decision, confirmation_id, notification)


def _notify(
    db: Session,
    dispatcher: NotificationDispatcher,
    code: str,
    name: str,
    phone: str,
    decision: str,
    confirmation_id: Optional[int],
) -> Optional[DispatchOutcome]:
    ttype = TemplateTypeEnum.confirm_ack if decision == "confirm" else TemplateTypeEnum.decline_ack
    try:
        variables = dict(templates_crud.load_event_info(db))
        variables.update(name=name, code=code)
        outcome = dispatcher.send(
            ttype, variables, phone,
            metadata={"code": code, "decision": decision, "confirmation_id": confirmation_id},
        )
        if outcome.delivered and confirmation_id is not None:
            confirmations_crud.mark_webhook_sent(db, confirmation_id)
        return outcome
    except (WorkflowError, SQLAlchemyError) as e:
        # La respuesta ya está guardada; queda pendiente de reenvío.
        db.rollback()
        logger.warning("WORKFLOW → acuse no enviado | code={} | {}", code, e)
        return None


def get_route_status(db: Session, code: str) -> Dict[str, Any]:
    """Estado público de un código: existe / usado / participante ligado (resumen)."""
    route = routes_crud.get_by_code(db, code)
    if route is None:
        raise NotFoundError("Código não encontrado")
    participant = participants_crud.get_by_id(db, route.participant_id) if route.participant_id else None
    return {
        "code": route.code,
        "used": bool(route.used),
        "state": state_of(route).value,
        "created_at": route.created_at,
        "participant": (
            {"id": participant.id, "name": participant.name, "phone": mask_phone(participant.phone)}
            if participant is not None else None
        ),
    }
