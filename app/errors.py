# app/errors.py
# =================================================================================
# 🚨 Taxonomía de errores del flujo de invitaciones
# ---------------------------------------------------------------------------------
# - ValidationError / NotFoundError / AlreadyUsedError: se devuelven al llamador.
# - StorageError: en importación por lote se convierte en error por fila.
# - RelayDeliveryError: se captura en el dispatcher; nunca tumba el flujo.
# Cada clase lleva `status_code` para que la capa HTTP la traduzca sin ifs.
# =================================================================================


class WorkflowError(Exception):
    """Base de todos los errores del núcleo (mensaje legible para el usuario)."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WorkflowError):
    status_code = 400


class NotFoundError(WorkflowError):
    status_code = 404


class AlreadyUsedError(WorkflowError):
    status_code = 409


class DuplicateError(WorkflowError):
    """Clasificación de importación (no es un fallo): el registro ya existe."""

    status_code = 409

    def __init__(self, message: str, existing_id=None, matched_on=None):
        super().__init__(message)
        self.existing_id = existing_id
        self.matched_on = matched_on or []


class StorageError(WorkflowError):
    status_code = 503


class CodeSpaceExhausted(WorkflowError):
    status_code = 503


class TemplateMissingError(WorkflowError):
    status_code = 404


class RelayDeliveryError(WorkflowError):
    status_code = 502


class RelayNotConfiguredError(RelayDeliveryError):
    """No hay RELAY_WEBHOOK_URL: no se puede transmitir nada."""
