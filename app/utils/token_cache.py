# app/utils/token_cache.py
# =================================================================================
# 🔑 Caché de token de acceso con expiración
# ---------------------------------------------------------------------------------
# Objeto explícito {value, expires_at} que se inyecta donde haga falta (cliente del
# relay). `get()` devuelve el token vigente o lo refresca con `fetch()`.
# Compartible entre hilos: el refresco va protegido con un lock.
# =================================================================================

import threading
import time
from typing import Callable, Optional, Tuple

from loguru import logger

TokenFetcher = Callable[[], Tuple[str, float]]       # Devuelve (token, ttl_en_segundos).


class TokenCache:
    def __init__(self, fetch: TokenFetcher, skew_seconds: float = 600.0, clock: Callable[[], float] = time.monotonic):
        self._fetch = fetch
        self._skew = max(0.0, skew_seconds)          # Margen para refrescar antes de que caduque.
        self._clock = clock
        self._lock = threading.Lock()
        self.value: Optional[str] = None
        self.expires_at: float = 0.0

    def is_valid(self) -> bool:
        return bool(self.value) and self._clock() < self.expires_at

    def get(self) -> str:
        """Token vigente; refresca si no hay o si entró en la ventana de expiración."""
        with self._lock:
            if self.is_valid():
                return self.value
            token, ttl = self._fetch()
            self.value = token
            self.expires_at = self._clock() + max(0.0, float(ttl) - self._skew)
            logger.debug("TokenCache → token refrescado | ttl={}s", ttl)
            return token

    def invalidate(self) -> None:
        with self._lock:
            self.value = None
            self.expires_at = 0.0
