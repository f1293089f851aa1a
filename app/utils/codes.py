# app/utils/codes.py
# =================================================================================
# 🎟️ Generador de códigos de invitación (rutas)
# ---------------------------------------------------------------------------------
# Token opaco de 16 caracteres hexadecimales en mayúsculas (64 bits de entropía)
# tomado de `secrets`, impredecible a partir de salidas anteriores.
# La unicidad NO se garantiza aquí: la resuelve el emisor de rutas contra la BD.
# =================================================================================

import secrets

CODE_BYTES = 8                                   # 8 bytes → 16 caracteres hex.
CODE_LENGTH = CODE_BYTES * 2


def generate_code() -> str:
    """Devuelve un código nuevo, p. ej. '9F1C03AB77E2D410'."""
    return secrets.token_hex(CODE_BYTES).upper()
