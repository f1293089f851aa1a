# app/utils/masking.py
# ---------------------------------------------------------------------------------
# 🛡️ Enmascarado de PII para logs (teléfono / email / documento).
# ---------------------------------------------------------------------------------

from typing import Optional


def mask_email(email: Optional[str]) -> str:
    """'test@example.com' -> 'te**@example.com'."""
    if not email:
        return "<empty>"
    if "@" not in email:
        return f"{email[:2]}***"
    user, domain = email.split("@", 1)
    return f"{user[:2]}{'*' * max(len(user) - 2, 0)}@{domain}"


def mask_phone(phone: Optional[str]) -> str:
    """Deja visibles solo los últimos 4 dígitos: '86999852058' -> '*******2058'."""
    if not phone:
        return "<empty>"
    txt = str(phone)
    if len(txt) <= 4:
        return "*" * len(txt)
    return "*" * (len(txt) - 4) + txt[-4:]


def mask_document(doc: Optional[str]) -> str:
    """Documento nacional: solo los 2 últimos dígitos."""
    if not doc:
        return "<empty>"
    return "*" * max(len(doc) - 2, 0) + doc[-2:]
