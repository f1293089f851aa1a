# app/notifier.py
# =================================================================================
# 📣 Dispatcher de notificaciones (plantilla → render → relay)
# ---------------------------------------------------------------------------------
# - render_template(): sustitución literal de {marcadores} en una sola pasada.
# - NotificationDispatcher.send(): busca la plantilla activa, renderiza y transmite.
#   Un fallo del relay NUNCA se propaga: se devuelve DispatchOutcome(delivered=False).
# - resend(): reenvía el acuse de una confirmación (at-least-once, repetible).
# - send_invites(): envío masivo de invitaciones; un fallo no detiene el resto.
# =================================================================================

import re
import uuid
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, Mapping, Optional

from loguru import logger
from sqlalchemy.orm import Session

from app.crud import confirmations_crud, participants_crud, routes_crud, templates_crud
from app.errors import NotFoundError, RelayDeliveryError, TemplateMissingError, WorkflowError
from app.models import TemplateTypeEnum
from app.utils.masking import mask_phone

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def render_template(body: str, variables: Mapping[str, Any]) -> str:
    """
    'Hi {name}, code {code}' + {name: 'Ana', code: 'X1'} → 'Hi Ana, code X1'.
    Los marcadores desconocidos quedan tal cual; los valores insertados no se re-escanean.
    """
    variables = variables or {}

    def _sub(match: "re.Match") -> str:
        key = match.group(1)
        if key in variables and variables[key] is not None:
            return str(variables[key])
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_sub, body or "")


@dataclass
class DispatchOutcome:
    delivered: bool
    template_type: str
    destination: str
    correlation_id: str
    message: str
    dry_run: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["destination"] = mask_phone(self.destination)
        return data


class NotificationDispatcher:
    def __init__(self, db: Session, relay):
        self.db = db
        self.relay = relay

    # -----------------------------------------------------------------------------
    # ✉️ Envío unitario
    # -----------------------------------------------------------------------------
    def send(
        self,
        template_type,
        variables: Mapping[str, Any],
        destination_phone: str,
        *,
        fallback_body: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> DispatchOutcome:
        ttype = templates_crud.coerce_type(template_type)
        template = templates_crud.get_active(self.db, ttype)
        if template is not None:
            body = template.body
        elif fallback_body is not None:
            logger.warning("NOTIFIER → sin plantilla activa, usando texto de respaldo | type={}", ttype.value)
            body = fallback_body
        else:
            raise TemplateMissingError(f"No hay plantilla activa de tipo '{ttype.value}'")

        message = render_template(body, variables)
        correlation_id = uuid.uuid4().hex
        payload = {
            "phone": destination_phone,
            "message": message,
            "type": ttype.value,
            "correlation_id": correlation_id,
            "metadata": dict(metadata or {}),
        }

        try:
            result = self.relay.deliver(payload) or {}
        except RelayDeliveryError as e:
            logger.warning(
                "NOTIFIER → entrega fallida | type={} | phone={} | cid={} | {}",
                ttype.value, mask_phone(destination_phone), correlation_id, e.message,
            )
            return DispatchOutcome(False, ttype.value, destination_phone, correlation_id, message, error=e.message)

        dry_run = bool(result.get("dry_run"))
        return DispatchOutcome(
            delivered=not dry_run,
            template_type=ttype.value,
            destination=destination_phone,
            correlation_id=correlation_id,
            message=message,
            dry_run=dry_run,
        )

    # -----------------------------------------------------------------------------
    # 🔁 Reenvío del acuse de una confirmación
    # -----------------------------------------------------------------------------
    def resend(self, confirmation_id: int) -> DispatchOutcome:
        confirmation = confirmations_crud.get_by_id(self.db, confirmation_id)
        if confirmation is None:
            raise NotFoundError("Confirmación no encontrada")

        conf_id, phone = confirmation.id, confirmation.phone
        variables = dict(templates_crud.load_event_info(self.db))
        variables.update(name=confirmation.name, code=confirmation.route_code)

        outcome = self.send(
            TemplateTypeEnum.confirm_ack,
            variables,
            phone,
            metadata={"confirmation_id": conf_id, "resend": True},
        )
        if outcome.delivered:
            confirmations_crud.mark_webhook_sent(self.db, conf_id)
        logger.info("NOTIFIER → reenvío | confirmation_id={} | delivered={}", conf_id, outcome.delivered)
        return outcome

    # -----------------------------------------------------------------------------
    # 📨 Invitaciones en lote
    # -----------------------------------------------------------------------------
    def send_invites(self, participant_ids: Iterable[int], base_url: str) -> Dict[str, Any]:
        ids = [int(pid) for pid in participant_ids]
        participants = {p.id: p for p in participants_crud.find_selected(self.db, ids)}
        codes = routes_crud.codes_by_participant(self.db, list(participants.keys()))
        event_info = templates_crud.load_event_info(self.db)
        base_url = (base_url or "").rstrip("/")

        results = []
        sent = simulated = errors = 0
        for pid in ids:
            p = participants.get(pid)
            if p is None:
                errors += 1
                results.append({"participant_id": pid, "success": False, "error": "Participante não encontrado"})
                continue
            code = codes.get(pid)
            if not code:
                errors += 1
                results.append({"participant_id": pid, "name": p.name, "success": False, "error": "Participante sem código"})
                continue

            variables = dict(event_info)
            variables.update(name=p.name, code=code, base_url=base_url)
            try:
                outcome = self.send(TemplateTypeEnum.invite, variables, p.phone, metadata={"participant_id": pid})
            except WorkflowError as e:
                errors += 1
                results.append({"participant_id": pid, "name": p.name, "success": False, "error": e.message})
                continue

            if outcome.delivered:
                sent += 1
            elif outcome.dry_run:
                simulated += 1
            else:
                errors += 1
            results.append({
                "participant_id": pid,
                "name": p.name,
                "code": code,
                "success": outcome.delivered or outcome.dry_run,
                "dry_run": outcome.dry_run,
                "error": outcome.error,
            })

        logger.info("NOTIFIER → invitaciones | total={} | sent={} | simulated={} | errors={}", len(ids), sent, simulated, errors)
        return {"results": results, "sent": sent, "simulated": simulated, "errors": errors, "total": len(ids)}
