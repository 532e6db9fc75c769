"""
Cliente HTTP de Estante Virtual.
"""

from __future__ import annotations

import json
from typing import Any
from urllib import error, request

from django.conf import settings


class MarketplaceError(Exception):
    """Error de integracion con Estante Virtual."""


class EstanteVirtualClient:
    """Acceso minimo a la API de Estante Virtual (pedidos, anuncios, rastreo)"""

    def __init__(self, base_url: str | None = None, token: str | None = None, timeout: int | None = None):
        self.base_url = (base_url or settings.ESTANTE_VIRTUAL_API_BASE_URL).rstrip("/")
        self.token = token if token is not None else settings.ESTANTE_VIRTUAL_API_TOKEN
        self.timeout = timeout or settings.ESTANTE_VIRTUAL_TIMEOUT_SECONDS

    def has_credentials(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _http_json(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self.has_credentials():
            raise MarketplaceError("Credenciales de Estante Virtual no configuradas")

        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = request.Request(url=f"{self.base_url}{path}", data=data, headers=self._headers(), method=method)
        try:
            with request.urlopen(req, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
                return json.loads(body) if body else {}
        except error.HTTPError as exc:
            detail = exc.read().decode("utf-8") if exc.fp else str(exc)
            raise MarketplaceError(f"HTTP {exc.code}: {detail}")
        except Exception as exc:
            raise MarketplaceError(str(exc))

    def fetch_orders(self, status: str = "pending") -> list[dict[str, Any]]:
        data = self._http_json("GET", f"/orders?status={status}")
        orders = data if isinstance(data, list) else data.get("orders", [])
        if not isinstance(orders, list):
            raise MarketplaceError("Respuesta de pedidos invalida")
        return orders

    def publish_listing(self, listing: dict[str, Any]) -> str:
        data = self._http_json("POST", "/listings", listing)
        listing_id = data.get("id") or data.get("listing_id")
        if not listing_id:
            raise MarketplaceError("Estante Virtual no devolvio el ID del anuncio")
        return str(listing_id)

    def send_tracking_code(self, external_order_id: str, tracking_code: str) -> None:
        self._http_json(
            "POST",
            f"/orders/{external_order_id}/tracking",
            {"tracking_code": tracking_code},
        )
