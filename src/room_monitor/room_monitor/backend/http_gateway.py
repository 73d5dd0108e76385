from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from ..common.datetime_utils import to_iso
from ..core.enums import AccessKind
from ..core.exceptions import BackendRejection, TransportError
from ..rooms.model import EntryFilters
from .errors import extract_message

logger = logging.getLogger(__name__)


class HttpRoomBackend:
    """RoomBackend over the REST API, one short-lived httpx client per call.

    Note: A client per call keeps the gateway usable from several event loops
    (Flask runs each async view in its own loop).
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = float(timeout)
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Token {self._token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers(),
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Backend %s %s unreachable: %s", method, path, exc)
            raise TransportError(f"No se pudo contactar el servidor: {exc}") from exc

        payload = self._decode(response)
        if response.is_error:
            message = extract_message(payload) or f"HTTP {response.status_code}"
            logger.info("Backend %s %s rejected with %s: %s", method, path, response.status_code, message)
            raise BackendRejection(response.status_code, message, payload)
        return payload

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return response.text
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError("Respuesta inválida del servidor") from exc

    async def validate_room_access(
        self, *, room_id: int, access_type: AccessKind, access_datetime: Optional[datetime] = None
    ) -> Any:
        body: dict[str, Any] = {"room_id": int(room_id), "access_type": AccessKind(access_type).value}
        if access_datetime is not None:
            body["access_datetime"] = to_iso(access_datetime)
        return await self._request("POST", "/schedule/schedules/validate_room_access/", json=body)

    async def register_entry(self, *, room_id: int, entry_time: Optional[datetime] = None) -> Any:
        body: dict[str, Any] = {"room": int(room_id)}
        if entry_time is not None:
            body["entry_time"] = to_iso(entry_time)
        return await self._request("POST", "/rooms/entry/", json=body)

    async def register_exit(self, *, entry_id: int, exit_time: Optional[datetime] = None) -> Any:
        body: dict[str, Any] = {}
        if exit_time is not None:
            body["exit_time"] = to_iso(exit_time)
        return await self._request("PATCH", f"/rooms/entry/{int(entry_id)}/exit/", json=body)

    async def get_room_access(self, *, room_id: int) -> Any:
        return await self._request("GET", f"/rooms/{int(room_id)}/access/")

    async def get_my_schedules(self) -> Any:
        return await self._request("GET", "/schedule/schedules/my_schedules/")

    async def get_my_entries(self) -> Any:
        return await self._request("GET", "/api/rooms/my-entries/")

    async def get_my_active_entry(self) -> Any:
        return await self._request("GET", "/api/rooms/my-active-entry/")

    async def get_all_entries(self, filters: Optional[EntryFilters] = None) -> Any:
        filters = filters or EntryFilters()
        return await self._request("GET", "/api/rooms/entries/", params=filters.to_params())
