# app/crud/templates_crud.py                                                  # Ruta del archivo dentro del proyecto.

# =================================================================================
# 💬 CRUD de Plantillas de mensajes + historial de revisiones
# - get_active(): la plantilla activa más recientemente actualizada de un tipo.
# - update(): edita en sitio y añade una TemplateRevision (append-only).
# - seed_defaults(): carga los textos iniciales solo si la tabla está vacía.
# =================================================================================

import json                                          # El cuerpo de event_info es un objeto JSON.
from datetime import datetime                        # Para tocar updated_at al activar/desactivar.
from typing import Any, Dict, List, Optional         # Tipado para claridad.

from loguru import logger                            # Trazas de auditoría.
from sqlalchemy import func                          # COUNT para decidir la siembra.
from sqlalchemy.orm import Session                   # Sesión de SQLAlchemy.

from app.errors import NotFoundError, ValidationError
from app.models import MessageTemplate, TemplateRevision, TemplateTypeEnum

# ---------------------------------------------------------------------------------
# 🌱 Textos iniciales (los participantes leen en portugués)
# ---------------------------------------------------------------------------------
DEFAULT_EVENT_INFO: Dict[str, str] = {
    "event_name": "CapacitIA – Autonomia Digital para Pessoas Idosas",
    "location": "Espaço da Cidadania Digital (próx. ao Estádio Lindolfo Monteiro)",
    "address": "R. Clodoaldo Freitas, 729 - Centro (Norte), Teresina - PI, 64000-360",
    "days": "28 e 30 de outubro (terça e quinta)",
    "schedule": "08h às 12h",
    "closing_message": "Aguardamos você no treinamento!",
}

DEFAULT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "type": TemplateTypeEnum.invite,
        "title": "Convite para o treinamento",
        "body": (
            "Olá, *{name}*! Tudo bem? 😄\n\n"
            "Você foi convidada(o) para o treinamento {event_name}.\n\n"
            "📅 {days}\n🕗 {schedule}\n📍 {location}\n\n"
            "Para confirmar sua presença, clique no link abaixo 👇\n"
            "🔗 {base_url}/{code}"
        ),
        "variables": ["name", "code", "base_url", "event_name", "days", "schedule", "location"],
    },
    {
        "type": TemplateTypeEnum.confirm_ack,
        "title": "Confirmação de presença",
        "body": (
            "Olá, {name}! 🎉\n\n"
            "Sua participação no *{event_name}* foi confirmada com sucesso! 🙌\n\n"
            "📍 Local: {location}\n📅 Dias: {days}\n🕗 Horário: {schedule}\n\n"
            "{closing_message}"
        ),
        "variables": ["name", "code", "event_name", "location", "days", "schedule", "closing_message"],
    },
    {
        "type": TemplateTypeEnum.decline_ack,
        "title": "Recusa de participação",
        "body": (
            "Olá, {name}! 😊\n\n"
            "Obrigado por nos informar. Entendemos que você não poderá participar do "
            "*{event_name}* nesta ocasião.\n\n"
            "📢 *Fique atento às nossas próximas turmas!*"
        ),
        "variables": ["name", "code", "event_name"],
    },
    {
        "type": TemplateTypeEnum.event_info,
        "title": "Informações do evento",
        "body": json.dumps(DEFAULT_EVENT_INFO, ensure_ascii=False),
        "variables": list(DEFAULT_EVENT_INFO.keys()),
    },
]


def coerce_type(template_type) -> TemplateTypeEnum:
    """Acepta el enum o su valor string; ValidationError si no es un tipo conocido."""
    try:
        return TemplateTypeEnum(template_type)
    except ValueError:
        raise ValidationError(f"Tipo de plantilla desconocido: {template_type}")


# ---------------------------------------------------------------------------------
# 🔎 Lecturas
# ---------------------------------------------------------------------------------
def get_by_id(db: Session, template_id: int) -> Optional[MessageTemplate]:
    return db.get(MessageTemplate, template_id)


def get_active(db: Session, template_type) -> Optional[MessageTemplate]:
    """Plantilla activa del tipo; si hay varias gana la actualizada más recientemente."""
    ttype = coerce_type(template_type)
    return (
        db.query(MessageTemplate)
        .filter(MessageTemplate.type == ttype, MessageTemplate.active.is_(True))
        .order_by(MessageTemplate.updated_at.desc(), MessageTemplate.id.desc())
        .first()
    )


def list_all(db: Session) -> List[MessageTemplate]:
    return (
        db.query(MessageTemplate)
        .order_by(MessageTemplate.type.asc(), MessageTemplate.updated_at.desc())
        .all()
    )


def history(db: Session, template_id: int) -> List[TemplateRevision]:
    """Revisiones de una plantilla, la más reciente primero."""
    if get_by_id(db, template_id) is None:
        raise NotFoundError("Plantilla no encontrada")
    return (
        db.query(TemplateRevision)
        .filter(TemplateRevision.template_id == template_id)
        .order_by(TemplateRevision.created_at.desc(), TemplateRevision.id.desc())
        .all()
    )


def load_event_info(db: Session) -> Dict[str, Any]:
    """
    Variables del evento a partir de la plantilla event_info activa.
    Cuerpo ausente o JSON inválido → dict vacío (los marcadores quedan literales).
    """
    template = get_active(db, TemplateTypeEnum.event_info)
    if template is None:
        return {}
    try:
        data = json.loads(template.body or "{}")
    except ValueError:
        logger.warning("TEMPLATES → event_info con JSON inválido | id={}", template.id)
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------------
# ✍️ Escrituras (con commit)
# ---------------------------------------------------------------------------------
def create(db: Session, template_type, title: str, body: str, variables: Optional[List[str]] = None) -> MessageTemplate:
    template = MessageTemplate(
        type=coerce_type(template_type),
        title=title,
        body=body,
        variables=variables,
        active=True,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    logger.info("TEMPLATES → creada | id={} | type={}", template.id, template.type.value)
    return template


def update(
    db: Session,
    template_id: int,
    *,
    title: Optional[str] = None,
    body: Optional[str] = None,
    variables: Optional[List[str]] = None,
    editor: str = "admin",
    reason: Optional[str] = None,
) -> MessageTemplate:
    """Edita la plantilla y registra la revisión en la misma transacción."""
    template = get_by_id(db, template_id)
    if template is None:
        raise NotFoundError("Plantilla no encontrada")

    previous_body = template.body
    if title is not None:
        template.title = title
    if body is not None:
        template.body = body
    if variables is not None:
        template.variables = variables
    template.updated_at = datetime.utcnow()

    db.add(TemplateRevision(
        template_id=template.id,
        previous_body=previous_body,
        new_body=template.body,
        editor=(editor or "admin"),
        reason=reason,
    ))
    db.commit()
    db.refresh(template)
    logger.info("TEMPLATES → actualizada | id={} | editor={}", template.id, editor)
    return template


def set_active(db: Session, template_id: int, active: bool) -> MessageTemplate:
    template = get_by_id(db, template_id)
    if template is None:
        raise NotFoundError("Plantilla no encontrada")
    template.active = bool(active)
    template.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(template)
    logger.info("TEMPLATES → active={} | id={}", template.active, template.id)
    return template


def seed_defaults(db: Session) -> int:
    """Inserta las plantillas por defecto si la tabla está vacía. Devuelve cuántas insertó."""
    existing = db.query(func.count(MessageTemplate.id)).scalar() or 0
    if existing:
        logger.debug("TEMPLATES → ya hay {} plantillas, no se siembra", existing)
        return 0
    for item in DEFAULT_TEMPLATES:
        db.add(MessageTemplate(
            type=item["type"],
            title=item["title"],
            body=item["body"],
            variables=item["variables"],
            active=True,
        ))
    db.commit()
    logger.info("TEMPLATES → {} plantillas iniciales cargadas", len(DEFAULT_TEMPLATES))
    return len(DEFAULT_TEMPLATES)
