"""Home Assistant REST client and the actuators built on it."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from ..domain.entities import EntityState

logger = logging.getLogger(__name__)


class HAClientError(Exception):
    """Base exception for Home Assistant client errors."""


class HAConnectionError(HAClientError):
    """Home Assistant could not be reached."""


class HAAuthenticationError(HAClientError):
    """Token rejected (401)."""


class HANotFoundError(HAClientError):
    """Unknown entity or service (404)."""


class HAServiceError(HAClientError):
    """Any other failed request."""


def _parse_ts(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None


def entity_state_from_dict(data: dict[str, Any]) -> EntityState:
    return EntityState(
        entity_id=data.get("entity_id", ""),
        state=str(data.get("state", "")),
        attributes=data.get("attributes") or {},
        last_changed=_parse_ts(data.get("last_changed")),
    )


class HomeAssistantClient:
    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 10.0,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> HomeAssistantClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._client is not None:
            return
        if not self._token:
            raise HAAuthenticationError("Home Assistant long-lived access token is required")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
            verify=self._verify_ssl,
            transport=self._transport,
        )
        try:
            data = await self._request("GET", "/api/")
        except HAClientError:
            await self.close()
            raise
        logger.info("Connected to Home Assistant at %s (%s)", self._base_url, data.get("message", "ok"))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        if self._client is None:
            raise HAConnectionError("Client not connected")
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise HAConnectionError(f"Home Assistant request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise HAConnectionError(f"Cannot reach Home Assistant at {self._base_url}: {e}") from e

        if resp.status_code == 401:
            raise HAAuthenticationError("Home Assistant rejected the access token")
        if resp.status_code == 404:
            raise HANotFoundError(f"Not found: {method} {path}")
        if resp.status_code >= 400:
            raise HAServiceError(f"{method} {path} failed ({resp.status_code}): {resp.text[:200]}")
        if not resp.content:
            return None
        return resp.json()

    async def get_states(self) -> list[EntityState]:
        data = await self._request("GET", "/api/states")
        return [entity_state_from_dict(d) for d in data or []]

    async def get_state(self, entity_id: str) -> EntityState:
        data = await self._request("GET", f"/api/states/{entity_id}")
        return entity_state_from_dict(data)

    async def call_service(self, domain: str, service: str, data: dict[str, Any]) -> None:
        logger.debug("call_service %s.%s %s", domain, service, data)
        await self._request("POST", f"/api/services/{domain}/{service}", json=data)


class HALight:
    def __init__(self, client: HomeAssistantClient, entity_id: str) -> None:
        self._client = client
        self.actuator_id = entity_id

    async def turn_on(self, brightness_pct: int = 100) -> None:
        await self._client.call_service(
            "light", "turn_on", {"entity_id": self.actuator_id, "brightness_pct": brightness_pct}
        )

    async def turn_off(self) -> None:
        await self._client.call_service("light", "turn_off", {"entity_id": self.actuator_id})


class HASwitch:
    def __init__(self, client: HomeAssistantClient, entity_id: str) -> None:
        self._client = client
        self.actuator_id = entity_id

    async def turn_on(self) -> None:
        await self._client.call_service("switch", "turn_on", {"entity_id": self.actuator_id})

    async def turn_off(self) -> None:
        await self._client.call_service("switch", "turn_off", {"entity_id": self.actuator_id})


class HAClimate:
    def __init__(self, client: HomeAssistantClient, entity_id: str) -> None:
        self._client = client
        self.actuator_id = entity_id

    async def set_temperature(self, temperature: float, hvac_mode: Optional[str] = None) -> None:
        data: dict[str, Any] = {"entity_id": self.actuator_id, "temperature": temperature}
        if hvac_mode:
            data["hvac_mode"] = hvac_mode
        await self._client.call_service("climate", "set_temperature", data)

    async def set_fan_mode(self, fan_mode: str) -> None:
        await self._client.call_service(
            "climate", "set_fan_mode", {"entity_id": self.actuator_id, "fan_mode": fan_mode}
        )

    async def turn_on(self) -> None:
        await self._client.call_service("climate", "turn_on", {"entity_id": self.actuator_id})

    async def turn_off(self) -> None:
        await self._client.call_service("climate", "turn_off", {"entity_id": self.actuator_id})
