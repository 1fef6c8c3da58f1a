from __future__ import annotations
import asyncio
import base64
import binascii
import logging
from typing import Awaitable, Callable, Optional, Set

from ..gateway import GatewayError, RemoteGateway
from ..models import LiveViewFrame
from .state import SessionState


log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class LiveViewLoader:
    """Fetches the latest camera frame and optionally keeps it fresh."""

    def __init__(
        self,
        state: SessionState,
        gateway: RemoteGateway,
        refresh_interval_s: float = 3.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.state = state
        self.gateway = gateway
        self.refresh_interval_s = refresh_interval_s
        self._sleep = sleep
        self._auto_task: Optional[asyncio.Task] = None
        self._auto_target: Optional[str] = None
        # Fetches started by the auto refresher; they outlive the loop that spawned them
        self._fetches: Set[asyncio.Task] = set()

    async def load_frame(self, sub_id: Optional[str]) -> LiveViewFrame:
        self.state.frame = self.state.frame.model_copy(update={"is_loading": True})
        try:
            res = await self.gateway.fetch_picture(sub_id)
            if res.hasPicture and res.picture:
                try:
                    image = base64.b64decode(res.picture, validate=True)
                except (binascii.Error, ValueError) as e:
                    raise GatewayError(f"undecodable picture: {e}") from e
                frame = LiveViewFrame(
                    encoded_image=image,
                    subject_id=res.id,
                    captured_at=res.timestamp,
                    is_loading=False,
                )
            else:
                # Valid empty result: keep whoever the server says it looked at
                frame = LiveViewFrame(subject_id=res.id, is_loading=False)
        except GatewayError as e:
            self.state.log.append(f"Live view failed: {e}")
            frame = self.state.frame.model_copy(update={"is_loading": False})
        except asyncio.CancelledError:
            self.state.frame = self.state.frame.model_copy(update={"is_loading": False})
            raise
        self.state.frame = frame
        return frame

    # ---------- Auto refresh ----------
    def set_auto_refresh(self, enabled: bool) -> None:
        self.state.auto_refresh = enabled
        self._sync_auto_task()

    def toggle_auto_refresh(self) -> bool:
        self.set_auto_refresh(not self.state.auto_refresh)
        return self.state.auto_refresh

    def on_selection_changed(self, old_id: Optional[str], new_id: Optional[str]) -> None:
        self._sync_auto_task()

    @property
    def auto_refresh_running(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    def _sync_auto_task(self) -> None:
        target = self.state.selected_id if self.state.auto_refresh else None
        if self.auto_refresh_running and self._auto_target == target:
            return
        self._cancel_auto()
        if target is None:
            return
        self._auto_target = target
        try:
            self._auto_task = asyncio.get_running_loop().create_task(self._auto_loop(target))
        except RuntimeError:
            # No running loop (e.g. configured before startup); picked up on next change
            log.debug("auto refresh deferred, no running event loop")
            self._auto_task = None

    def _cancel_auto(self) -> None:
        if self._auto_task is not None and not self._auto_task.done():
            self._auto_task.cancel()
        self._auto_task = None
        self._auto_target = None

    async def _auto_loop(self, target: str) -> None:
        while True:
            await self._sleep(self.refresh_interval_s)
            if not self.state.auto_refresh or self.state.selected_id != target:
                return
            fetch = asyncio.get_running_loop().create_task(self.load_frame(target))
            self._fetches.add(fetch)
            fetch.add_done_callback(self._fetches.discard)
            # Stopping the loop must not abort a fetch already in flight
            await asyncio.shield(fetch)

    async def drain(self) -> None:
        while self._fetches:
            await asyncio.gather(*list(self._fetches), return_exceptions=True)

    def shutdown(self) -> None:
        self._cancel_auto()
        for fetch in list(self._fetches):
            fetch.cancel()
        self._fetches.clear()
