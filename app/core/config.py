# app/core/config.py
# =================================================================================
# ⚙️ Lectura de configuración desde variables de entorno (.env)
# ---------------------------------------------------------------------------------
# Los valores se leen en tiempo de ejecución (no al importar) para que DRY_RUN,
# la URL del relay o los timeouts puedan cambiarse sin reiniciar tests/scripts.
# =================================================================================

import os
from typing import List, Optional


def env_str(name: str, default: str = "") -> str:
    """Devuelve la variable recortada o el default si no existe."""
    return (os.getenv(name, default) or "").strip()


def env_bool(name: str, default: bool = False) -> bool:
    """Interpreta '1', 'true', 'yes', 'on' como True."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def env_list(name: str, default: Optional[List[str]] = None) -> List[str]:
    """Lista separada por comas (ej. CORS_ORIGINS)."""
    raw = env_str(name)
    if not raw:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


def is_dry_run() -> bool:
    """DRY_RUN=1 (por defecto) simula los envíos al relay sin transmitir nada."""
    return env_bool("DRY_RUN", True)


def relay_timeout() -> float:
    """Timeout (segundos) de cada llamada al relay; acotado para no bloquear el flujo."""
    return env_float("RELAY_TIMEOUT", 15.0)


def public_base_url() -> str:
    """URL pública donde el participante abre su enlace ({base_url}/{code})."""
    return env_str("PUBLIC_BASE_URL").rstrip("/")
