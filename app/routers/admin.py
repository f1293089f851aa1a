# app/routers/admin.py
# =============================================================================
# 👑 Rutas de administración (protegidas con x-admin-key)
# - Importación de participantes en lote y reparación de rutas faltantes
# - Estadísticas, confirmaciones y reenvío de acuses
# - Listados para envío de invitaciones y envío en lote
# - Plantillas de mensajes (CRUD + historial) y purga de datos de prueba
# =============================================================================

from typing import List, Optional                                  # Tipos para anotaciones.

from fastapi import APIRouter, Depends                             # Router y dependencias de FastAPI.
from loguru import logger                                          # Trazas de auditoría.
from sqlalchemy.exc import SQLAlchemyError                         # Errores de BD en la purga.
from sqlalchemy.orm import Session                                 # Tipo de sesión de SQLAlchemy.

import app.schemas as schemas                                      # Import del módulo completo de schemas.
from app.core.config import public_base_url                        # URL pública para los enlaces.
from app.core.security import require_admin                        # Dep. que valida x-admin-key == ADMIN_API_KEY.
from app.crud import confirmations_crud, participants_crud, routes_crud, templates_crud
from app.db import get_db                                          # Proveedor de Session por request.
from app.errors import StorageError, ValidationError
from app.importer import import_batch
from app.issuer import issue_missing_routes, issue_routes
from app.notifier import NotificationDispatcher
from app.relay import get_relay

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],                         # Todas las rutas exigen la API key.
)


def _with_code(participant, route) -> schemas.ParticipantWithCode:
    data = schemas.ParticipantSummary.model_validate(participant).model_dump()
    return schemas.ParticipantWithCode(**data, code=route.code, used=bool(route.used))


# ------------------------------ Participantes ---------------------------------

@router.post("/import-participants", response_model=schemas.ImportSummaryOut)
def import_participants(payload: schemas.ImportParticipantsPayload, db: Session = Depends(get_db)):
    """Nunca aborta el lote por un error de fila: todo queda en el resumen."""
    summary = import_batch(db, payload.participants, issue_routes=payload.issue_routes)
    return schemas.ImportSummaryOut(**summary.to_dict())


@router.post("/routes", response_model=schemas.RoutesIssued, status_code=201)
def issue_standalone_routes(payload: schemas.IssueRoutesRequest, db: Session = Depends(get_db)):
    """Emite `count` códigos sin participante (p. ej. para convites avulsos)."""
    codes = issue_routes(db, payload.count)
    logger.info("ADMIN → {} rutas independientes emitidas", len(codes))
    return schemas.RoutesIssued(codes=codes)


@router.post("/issue-missing-routes")
def issue_missing(db: Session = Depends(get_db)):
    results = issue_missing_routes(db)
    issued = sum(1 for r in results if r["success"])
    return {"success": True, "issued": issued, "failed": len(results) - issued, "results": results}


@router.get("/participants/for-sending", response_model=List[schemas.ParticipantWithCode])
def participants_for_sending(project: Optional[str] = None, db: Session = Depends(get_db)):
    return [_with_code(p, r) for p, r in participants_crud.list_for_sending(db, project)]


@router.get("/participants/pending", response_model=List[schemas.ParticipantWithCode])
def participants_pending(db: Session = Depends(get_db)):
    return [_with_code(p, r) for p, r in participants_crud.list_pending(db)]


@router.post("/send-invites")
def send_invites(payload: schemas.SendInvitesRequest, db: Session = Depends(get_db), relay=Depends(get_relay)):
    base_url = (payload.base_url or public_base_url()).rstrip("/")
    if not base_url:
        raise ValidationError("base_url ausente (envie no corpo ou configure PUBLIC_BASE_URL)")
    report = NotificationDispatcher(db, relay).send_invites(payload.participant_ids, base_url)
    return {"success": True, **report}


# ------------------------------ Confirmaciones --------------------------------

@router.get("/stats", response_model=schemas.StatsOut)
def stats(db: Session = Depends(get_db)):
    routes = routes_crud.counts(db)
    confirmations = confirmations_crud.counts(db)
    return schemas.StatsOut(
        participants=participants_crud.count(db),
        routes_total=routes["total"],
        routes_used=routes["used"],
        routes_unused=routes["unused"],
        confirmations=confirmations["total"],
        webhook_sent=confirmations["webhook_sent"],
        webhook_pending=confirmations["webhook_pending"],
    )


@router.get("/confirmations", response_model=List[schemas.ConfirmationOut])
def list_confirmations(limit: Optional[int] = None, db: Session = Depends(get_db)):
    return confirmations_crud.list_all(db, limit)


@router.post("/confirmations/{confirmation_id}/resend")
def resend_confirmation(confirmation_id: int, db: Session = Depends(get_db), relay=Depends(get_relay)):
    outcome = NotificationDispatcher(db, relay).resend(confirmation_id)
    return {"success": outcome.delivered or outcome.dry_run, "outcome": outcome.to_dict()}


# -------------------------------- Plantillas ----------------------------------

@router.get("/templates", response_model=List[schemas.TemplateOut])
def list_templates(db: Session = Depends(get_db)):
    return templates_crud.list_all(db)


@router.post("/templates", response_model=schemas.TemplateOut, status_code=201)
def create_template(payload: schemas.TemplateCreate, db: Session = Depends(get_db)):
    return templates_crud.create(db, payload.type, payload.title, payload.body, payload.variables)


@router.put("/templates/{template_id}", response_model=schemas.TemplateOut)
def update_template(template_id: int, payload: schemas.TemplateUpdate, db: Session = Depends(get_db)):
    return templates_crud.update(
        db,
        template_id,
        title=payload.title,
        body=payload.body,
        variables=payload.variables,
        editor=payload.editor,
        reason=payload.reason,
    )


@router.post("/templates/{template_id}/active", response_model=schemas.TemplateOut)
def set_template_active(template_id: int, payload: schemas.TemplateActiveIn, db: Session = Depends(get_db)):
    return templates_crud.set_active(db, template_id, payload.active)


@router.get("/templates/{template_id}/history", response_model=List[schemas.TemplateRevisionOut])
def template_history(template_id: int, db: Session = Depends(get_db)):
    return templates_crud.history(db, template_id)


# ------------------------------ Datos de prueba -------------------------------

@router.delete("/test-data")
def purge_test_data(db: Session = Depends(get_db)):
    """Borra rutas TEST_*, sus confirmaciones y los participantes ligados a ellas."""
    try:
        deleted = routes_crud.purge_by_prefix(db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("ADMIN → error purgando datos de prueba | {}", e)
        raise StorageError("Não foi possível remover os dados de teste") from e

    logger.warning(
        "ADMIN → datos de prueba eliminados | routes={} | confirmations={} | participants={}",
        deleted["routes"], deleted["confirmations"], deleted["participants"],
    )
    return {"success": True, **deleted}
