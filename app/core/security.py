# app/core/security.py
import os
from fastapi import Depends, HTTPException, status
from fastapi.security.api_key import APIKeyHeader

_api_key_header = APIKeyHeader(name="x-admin-key", auto_error=False)


def require_admin(api_key: str = Depends(_api_key_header)) -> None:
    # Se lee en cada petición: rotar la clave no exige reiniciar el proceso.
    admin_key = os.getenv("ADMIN_API_KEY", "")
    if not admin_key or api_key != admin_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
        )
