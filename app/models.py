# app/models.py  # Define la ruta y nombre del archivo del módulo de modelos.

# =================================================================================
# 🏛️ DEFINICIÓN DE LOS MODELOS DE LA BASE DE DATOS (ORM)
# ---------------------------------------------------------------------------------
# Este archivo define la estructura de las tablas utilizando SQLAlchemy ORM.
# Implementa:
# - Route: código único de un solo uso (UNIQUE en BD), opcionalmente ligado a un participante.
# - Participant: registro importado del formulario (teléfono/documento normalizados).
# - Confirmation: confirmación de asistencia, referencia a la ruta por valor.
# - MessageTemplate + TemplateRevision: plantillas editables con historial append-only.
# =================================================================================

# 🐍 Importaciones de Python y SQLAlchemy
# ---------------------------------------------------------------------------------
from datetime import date, datetime  # Sellos de tiempo y fecha de incorporación.
import enum  # Enumeraciones tipadas.

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    JSON,
    func,
    Enum as SQLAlchemyEnum,
    Index,
)
from sqlalchemy.orm import relationship as orm_relationship

from app.db import Base  # Base declarativa del proyecto (metadatos ORM).


# 🗂️ ENUMS PARA CONSISTENCIA DE DATOS
# ---------------------------------------------------------------------------------
class TemplateTypeEnum(str, enum.Enum):  # Tipos de mensaje enviados por el relay.
    invite = "invite"              # Invitación con enlace {base_url}/{code}.
    confirm_ack = "confirm_ack"    # Acuse de confirmación de presencia.
    decline_ack = "decline_ack"    # Acuse de recusa.
    event_info = "event_info"      # JSON con datos del evento (local, días, horario...).


# 🎟️ RUTAS / CÓDIGOS (TABLA 'routes')
# ---------------------------------------------------------------------------------
class Route(Base):
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, index=True, nullable=False)   # UNIQUE: fuente de verdad de unicidad.
    participant_id = Column(Integer, index=True, nullable=True)          # Referencia débil (sin FK ni cascada).
    used = Column(Boolean, default=False, nullable=False)                # false → true una sola vez.
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# 🧑‍🤝‍🧑 PARTICIPANTES IMPORTADOS (TABLA 'participants')
# ---------------------------------------------------------------------------------
class Participant(Base):
    __tablename__ = "participants"

    # Unicidad lógica (no constraint): documento OR teléfono. Índices para la búsqueda de duplicados.
    __table_args__ = (
        Index("ix_participants_national_id", "national_id"),
        Index("ix_participants_phone", "phone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    submitted_at = Column(DateTime, nullable=True)          # "Carimbo de data/hora" del formulario.
    name = Column(String(255), nullable=False)
    gender = Column(String(50), nullable=True)
    age = Column(Integer, nullable=True)
    national_id = Column(String(14), nullable=True)         # CPF solo dígitos.
    city = Column(String(100), nullable=True)
    neighborhood = Column(String(100), nullable=True)
    retired = Column(String(10), nullable=True)
    phone = Column(String(20), nullable=False)              # Solo dígitos.
    email = Column(String(255), nullable=True)
    extension_project = Column(String(255), nullable=True)
    other_project = Column(Text, nullable=True)
    data_consent = Column(String(10), nullable=True)
    difficulties = Column(Text, nullable=True)
    imported_on = Column(Date, default=date.today, nullable=False)
    imported_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# ✅ CONFIRMACIONES (TABLA 'confirmations')
# ---------------------------------------------------------------------------------
class Confirmation(Base):
    __tablename__ = "confirmations"

    id = Column(Integer, primary_key=True, index=True)
    route_code = Column(String(64), index=True, nullable=False)   # Por valor: la ruta no "posee" la confirmación.
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    confirmed_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    webhook_sent = Column(Boolean, default=False, nullable=False)  # Se marca aparte, tras el envío.


# 💬 PLANTILLAS DE MENSAJE (TABLA 'message_templates')
# ---------------------------------------------------------------------------------
class MessageTemplate(Base):
    __tablename__ = "message_templates"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(SQLAlchemyEnum(TemplateTypeEnum), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)                 # Texto con marcadores {nombre}.
    variables = Column(JSON, nullable=True)             # Lista de marcadores reconocidos.
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    revisions = orm_relationship(
        "TemplateRevision",
        cascade="all, delete-orphan",
        back_populates="template",
        order_by="TemplateRevision.id",
    )


# 📜 HISTORIAL DE PLANTILLAS (TABLA 'template_revisions') (solo se añaden filas)
# ---------------------------------------------------------------------------------
class TemplateRevision(Base):
    __tablename__ = "template_revisions"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("message_templates.id", ondelete="CASCADE"), index=True, nullable=False)
    previous_body = Column(Text, nullable=False)
    new_body = Column(Text, nullable=False)
    editor = Column(String(100), default="admin", nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    template = orm_relationship("MessageTemplate", back_populates="revisions")
