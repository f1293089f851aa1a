# app/schemas.py  # Ruta y nombre del archivo de esquemas (Pydantic).

# =================================================================================
# 📦 Schemas (MODELOS DE DATOS Pydantic)
# ---------------------------------------------------------------------------------
# Modelos de entrada/salida de la API de confirmaciones.
# - Validan la forma del payload; las reglas de negocio (nombre/teléfono
#   obligatorios, decisión válida) las aplica el flujo para responder 400 uniforme.
# - Serializan objetos ORM a JSON (from_attributes=True).
# - Pydantic v2: field_validator / model_validator y ConfigDict.
# =================================================================================

from datetime import date, datetime                                       # Tipos de fecha para timestamps.
from typing import Any, Dict, List, Literal, Optional                     # Anotaciones.

from pydantic import (
    BaseModel,
    EmailStr,
    field_validator,
    model_validator,
    ConfigDict,
    Field,
)

from app.models import TemplateTypeEnum                                   # Enum de tipos de plantilla.

DecisionLiteral = Literal["confirm", "decline"]


# =================================================================================
# ✅ Confirmación pública
# =================================================================================
class ConfirmRequest(BaseModel):
    name: str = ""                                                        # Obligatorio (lo valida el flujo).
    phone: str = ""                                                       # Obligatorio (lo valida el flujo).
    email: Optional[EmailStr] = None
    decision: str = "confirm"

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_is_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class ConfirmResponse(BaseModel):
    success: bool
    message: str
    code: str
    decision: str
    confirmation_id: Optional[int] = None
    notification_delivered: Optional[bool] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


# =================================================================================
# 🎟️ Rutas / participantes
# =================================================================================
class RouteCreated(BaseModel):
    success: bool = True
    code: str


class IssueRoutesRequest(BaseModel):
    count: int = Field(1, ge=1, le=500)                                   # Códigos sueltos por petición.


class RoutesIssued(BaseModel):
    success: bool = True
    codes: List[str]


class ParticipantSummary(BaseModel):
    id: int
    name: str
    phone: str
    email: Optional[str] = None
    national_id: Optional[str] = None
    city: Optional[str] = None
    extension_project: Optional[str] = None
    imported_on: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class RouteStatus(BaseModel):
    code: str
    used: bool
    state: str
    created_at: Optional[datetime] = None
    participant: Optional[Dict[str, Any]] = None


class ParticipantWithCode(ParticipantSummary):
    code: str
    used: bool = False


# =================================================================================
# 📥 Importación
# =================================================================================
class ImportParticipantsPayload(BaseModel):
    # Filas sueltas: encabezados del cuestionario o claves canónicas.
    participants: List[Dict[str, Any]] = Field(default_factory=list)
    issue_routes: bool = True

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, data):
        """Acepta también una lista JSON directa como cuerpo."""
        if isinstance(data, list):
            return {"participants": data}
        return data


class ImportFailure(BaseModel):
    row: int
    name: Optional[str] = None
    reason: str


class ImportSummaryOut(BaseModel):
    success: bool = True
    processed: int
    imported: int
    duplicates: int
    errors: int
    route_failures: int = 0
    failures: List[ImportFailure] = []
    duplicate_details: List[Dict[str, Any]] = []
    results: List[Dict[str, Any]] = []


# =================================================================================
# 📊 Panel de administración
# =================================================================================
class ConfirmationOut(BaseModel):
    id: int
    route_code: str
    name: str
    phone: str
    email: Optional[str] = None
    confirmed_at: datetime
    webhook_sent: bool

    model_config = ConfigDict(from_attributes=True)


class StatsOut(BaseModel):
    participants: int
    routes_total: int
    routes_used: int
    routes_unused: int
    confirmations: int
    webhook_sent: int
    webhook_pending: int


class SendInvitesRequest(BaseModel):
    participant_ids: List[int] = Field(default_factory=list)
    base_url: Optional[str] = None

    @field_validator("participant_ids")
    @classmethod
    def _non_empty(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("Selecione ao menos um participante.")
        return v


# =================================================================================
# 💬 Plantillas
# =================================================================================
class TemplateOut(BaseModel):
    id: int
    type: TemplateTypeEnum
    title: str
    body: str
    variables: Optional[List[str]] = None
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class TemplateCreate(BaseModel):
    type: TemplateTypeEnum
    title: str
    body: str
    variables: Optional[List[str]] = None

    @field_validator("title", "body")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("Título e conteúdo são obrigatórios.")
        return v


class TemplateUpdate(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
    variables: Optional[List[str]] = None
    editor: str = "admin"
    reason: Optional[str] = None

    @model_validator(mode="after")
    def _something_to_change(self):
        if self.title is None and self.body is None and self.variables is None:
            raise ValueError("Nada para atualizar.")
        return self


class TemplateActiveIn(BaseModel):
    active: bool


class TemplateRevisionOut(BaseModel):
    id: int
    template_id: int
    previous_body: str
    new_body: str
    editor: str
    reason: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
