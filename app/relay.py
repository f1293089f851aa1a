# app/relay.py
# =================================================================================
# 📡 Cliente del relay de mensajería (webhook HTTP → WhatsApp)
# ---------------------------------------------------------------------------------
# - POST JSON {phone, message, type, correlation_id, metadata} con timeout acotado.
# - No-2xx, timeout o error de conexión → RelayDeliveryError (el dispatcher decide).
# - Sin URL configurada → RelayNotConfiguredError.
# - DRY_RUN: solo se registra el payload; nada se transmite.
# - Token bearer opcional a través de un TokenCache inyectado (401 lo invalida).
# =================================================================================

from typing import Any, Dict, Optional, Tuple

import requests
from fastapi import Request
from loguru import logger

from app.core.config import env_float, env_str, is_dry_run, relay_timeout
from app.errors import RelayDeliveryError, RelayNotConfiguredError
from app.utils.masking import mask_phone
from app.utils.token_cache import TokenCache


class RelayClient:
    def __init__(
        self,
        url: Optional[str],
        timeout: float = 15,
        token_cache: Optional[TokenCache] = None,
        dry_run: bool = False,
        session: Optional[requests.Session] = None,
    ):
        self.url = (url or "").strip()
        self.timeout = timeout
        self.token_cache = token_cache
        self.dry_run = dry_run
        self._http = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token_cache is not None:
            headers["Authorization"] = f"Bearer {self.token_cache.get()}"
        return headers

    def deliver(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Transmite un mensaje. Devuelve {"dry_run", "status_code", "response"}.
        Lanza RelayDeliveryError si el relay no confirma la recepción.
        """
        phone = payload.get("phone")
        if self.dry_run:
            logger.info(
                "[DRY_RUN] RELAY → simular envío | type={} | phone={} | cid={}\n{}",
                payload.get("type"), mask_phone(phone), payload.get("correlation_id"), payload.get("message"),
            )
            return {"dry_run": True, "status_code": None, "response": None}

        if not self.url:
            raise RelayNotConfiguredError("RELAY_WEBHOOK_URL no está configurada")

        try:
            resp = self._http.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.Timeout as e:
            logger.warning("RELAY → timeout tras {}s | phone={}", self.timeout, mask_phone(phone))
            raise RelayDeliveryError(f"Timeout del relay ({self.timeout}s)") from e
        except requests.RequestException as e:
            logger.warning("RELAY → error de conexión | phone={} | {}", mask_phone(phone), e)
            raise RelayDeliveryError(f"Error de conexión con el relay: {e}") from e

        if resp.status_code == 401 and self.token_cache is not None:
            # Token rechazado: el siguiente envío pedirá uno nuevo.
            self.token_cache.invalidate()

        if not (200 <= resp.status_code < 300):
            body = (resp.text or "")[:300]
            logger.warning("RELAY → HTTP {} | phone={} | body={}", resp.status_code, mask_phone(phone), body)
            raise RelayDeliveryError(f"El relay respondió HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            data = None
        logger.info("RELAY → entregado | HTTP {} | phone={}", resp.status_code, mask_phone(phone))
        return {"dry_run": False, "status_code": resp.status_code, "response": data}


# ---------------------------------------------------------------------------------
# 🔑 Token del relay (client credentials)
# ---------------------------------------------------------------------------------
def token_fetcher(token_url: str, client_id: str, client_secret: str, timeout: float = 15):
    """Devuelve un callable que pide un token y responde (access_token, expires_in)."""

    def _fetch() -> Tuple[str, float]:
        try:
            resp = requests.post(
                token_url,
                data={"grant_type": "client_credentials", "client_id": client_id, "client_secret": client_secret},
                timeout=timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise RelayDeliveryError(f"No fue posible obtener el token del relay: {e}") from e
        token = data.get("access_token")
        if not token:
            raise RelayDeliveryError("Respuesta de token sin access_token")
        return token, float(data.get("expires_in") or 3600)

    return _fetch


def relay_from_env() -> RelayClient:
    """Construye el cliente a partir de RELAY_* y DRY_RUN (evaluados en tiempo de ejecución)."""
    timeout = relay_timeout()
    token_url = env_str("RELAY_TOKEN_URL")
    cache = None
    if token_url:
        cache = TokenCache(
            token_fetcher(token_url, env_str("RELAY_CLIENT_ID"), env_str("RELAY_CLIENT_SECRET"), timeout),
            skew_seconds=env_float("RELAY_TOKEN_SKEW", 600.0),
        )
    return RelayClient(env_str("RELAY_WEBHOOK_URL"), timeout=timeout, token_cache=cache, dry_run=is_dry_run())


def get_relay(request: Request) -> RelayClient:
    """
    Dependencia de FastAPI: el cliente creado en el arranque (app.state.relay),
    así el TokenCache se comparte entre peticiones.
    """
    relay = getattr(request.app.state, "relay", None)
    return relay if relay is not None else relay_from_env()
