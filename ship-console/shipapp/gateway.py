from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .config import CONFIG
from .models import (
    LaunchParams,
    MeasurementSummary,
    NavigateCommand,
    PictureResponse,
    PilotCommand,
    RadarResponse,
    ScanResult,
    WorldState,
)


log = logging.getLogger(__name__)


class GatewayError(Exception):
    """A call to the ship API failed.

    Transport errors, non-success statuses and malformed bodies all end up
    here; callers only look at the message.
    """


class RemoteGateway:
    """Request/response primitive for the ship API under ``/api``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or CONFIG.api_base_url).rstrip("/")
        self.timeout = CONFIG.request_timeout_s if timeout is None else timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self._get_client()
        try:
            resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.debug("%s %s failed: %s", method, path, e)
            raise GatewayError(str(e) or type(e).__name__) from e
        if not resp.is_success:
            raise GatewayError(f"HTTP {resp.status_code}")
        return resp

    async def get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        resp = await self._request("GET", path, params=params)
        try:
            data = resp.json()
        except ValueError as e:
            raise GatewayError(f"invalid JSON from {path}") from e
        if not isinstance(data, dict):
            raise GatewayError(f"unexpected response from {path}")
        return data

    async def post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        resp = await self._request("POST", path, **kwargs)
        # Commands may acknowledge with an empty or non-JSON body
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    # ---------- Typed calls ----------
    async def get_state(self) -> WorldState:
        data = await self.get("/state")
        try:
            return WorldState.model_validate(data)
        except ValidationError as e:
            raise GatewayError(f"malformed state: {e.error_count()} error(s)") from e

    async def launch(self, params: LaunchParams) -> None:
        await self.post("/launch", params.model_dump())

    async def navigate(self, command: NavigateCommand) -> None:
        await self.post("/navigate", command.model_dump())

    async def scan(self) -> ScanResult:
        data = await self.post("/scan")
        try:
            return ScanResult.model_validate(data)
        except ValidationError as e:
            raise GatewayError("malformed scan result") from e

    async def radar(self) -> RadarResponse:
        data = await self.post("/radar")
        try:
            return RadarResponse.model_validate(data)
        except ValidationError as e:
            raise GatewayError("malformed radar response") from e

    async def start_submarine(self) -> None:
        await self.post("/submarine/start")

    async def kill_submarine(self, sub_id: Optional[str]) -> None:
        await self.post("/submarine/kill", {"id": sub_id})

    async def pilot(self, command: PilotCommand) -> None:
        await self.post("/submarine/pilot", command.model_dump())

    async def fetch_picture(self, sub_id: Optional[str] = None) -> PictureResponse:
        # No id means the server picks its default submersible
        params = {"id": sub_id} if sub_id else None
        data = await self.get("/submarine/picture", params=params)
        try:
            return PictureResponse.model_validate(data)
        except ValidationError as e:
            raise GatewayError("malformed picture response") from e

    async def measurements(self, sub_id: Optional[str] = None) -> MeasurementSummary:
        params = {"id": sub_id} if sub_id else None
        data = await self.get("/submarine/measurements", params=params)
        try:
            return MeasurementSummary.model_validate(data)
        except ValidationError as e:
            raise GatewayError("malformed measurement summary") from e

    async def reset(self) -> None:
        await self.post("/reset")
