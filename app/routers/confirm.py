# app/routers/confirm.py  # Router público: abrir el enlace del código y responder.

# =================================================================================
# 🎟️ Router: Endpoints públicos de rutas y confirmación
# ---------------------------------------------------------------------------------
# - POST /api/routes                       → emite un código independiente.
# - GET  /api/routes/{code}                → estado del código (404 si no existe).
# - GET  /api/participants/by-code/{code}  → participante ligado (404 si no hay).
# - POST /api/confirm/{code}               → confirma o rechaza (400/404/409).
# Los WorkflowError se traducen a JSON {success:false, message} en app.main.
# =================================================================================

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.orm import Session

import app.schemas as schemas
from app.crud import participants_crud
from app.db import get_db
from app.errors import NotFoundError
from app.issuer import issue_route
from app.notifier import NotificationDispatcher
from app.relay import get_relay
from app.workflow import get_route_status, submit_response

router = APIRouter(prefix="/api", tags=["confirm"])

# Cuerpo uniforme de error (ver manejador de WorkflowError en app.main).
ERROR_RESPONSES = {
    400: {"model": schemas.ErrorResponse, "description": "Dados inválidos"},
    404: {"model": schemas.ErrorResponse, "description": "Código não encontrado"},
    409: {"model": schemas.ErrorResponse, "description": "Código já utilizado"},
}


@router.post("/routes", response_model=schemas.RouteCreated, status_code=201)
def create_route(db: Session = Depends(get_db)):
    code = issue_route(db)
    logger.info("API → ruta independiente creada | code={}", code)
    return schemas.RouteCreated(code=code)


@router.get("/routes/{code}", response_model=schemas.RouteStatus, responses={404: ERROR_RESPONSES[404]})
def route_status(code: str, db: Session = Depends(get_db)):
    return get_route_status(db, code)


@router.get("/participants/by-code/{code}", response_model=schemas.ParticipantSummary, responses={404: ERROR_RESPONSES[404]})
def participant_by_code(code: str, db: Session = Depends(get_db)):
    participant = participants_crud.find_by_code(db, code)
    if participant is None:
        raise NotFoundError("Participante não encontrado para este código")
    return participant


@router.post("/confirm/{code}", response_model=schemas.ConfirmResponse, responses=ERROR_RESPONSES)
def confirm(
    code: str,
    payload: schemas.ConfirmRequest,
    db: Session = Depends(get_db),
    relay=Depends(get_relay),
):
    """Registra la respuesta; el acuse por el relay es best-effort y no cambia el status."""
    result = submit_response(
        db,
        code,
        payload.name,
        payload.phone,
        payload.email,
        payload.decision,
        dispatcher=NotificationDispatcher(db, relay),
    )
    return schemas.ConfirmResponse(
        success=result.success,
        message=result.message,
        code=result.code,
        decision=result.decision,
        confirmation_id=result.confirmation_id,
        notification_delivered=result.notification.delivered if result.notification else None,
    )
