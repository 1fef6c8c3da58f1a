from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set

from ..gateway import GatewayError, RemoteGateway
from ..models import PilotCommand
from .liveview import LiveViewLoader
from .state import SessionState


log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class Stage:
    """One step of a follow-up chain: wait ``delay_s`` then run ``action``.

    A stage with ``quiet=True`` ends the chain silently when its action
    fails; other stages let the error propagate to the chain runner.
    """

    name: str
    delay_s: float
    action: Callable[[], Awaitable[object]]
    quiet: bool = False


@dataclass(frozen=True)
class CaptureTimings:
    photo_delay_s: float = 0.2
    fetch_after_photo_s: float = 0.6
    manual_photo_fetch_s: float = 0.8
    capture_refetch_s: float = 1.5


class MovementCaptureSequencer:
    """Sends pilot commands and schedules the automatic photo/fetch chain.

    The delays stand in for a completion signal the server does not give;
    the fetch can still race the photo.
    """

    def __init__(
        self,
        state: SessionState,
        gateway: RemoteGateway,
        live_view: LiveViewLoader,
        refresh: Callable[[], Awaitable[object]],
        timings: CaptureTimings = CaptureTimings(),
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.state = state
        self.gateway = gateway
        self.live_view = live_view
        self._refresh = refresh
        self.timings = timings
        self._sleep = sleep
        self._pending: Set[asyncio.Task] = set()

    # ---------- Stage builders ----------
    def _photo_stage(self, sub_id: Optional[str]) -> Stage:
        async def _take_photo() -> None:
            await self.gateway.pilot(PilotCommand(id=sub_id, route="None", action="take_photo"))
        return Stage("photo", self.timings.photo_delay_s, _take_photo, quiet=True)

    def _fetch_stage(self, sub_id: Optional[str], delay_s: float, name: str = "fetch") -> Stage:
        async def _fetch() -> None:
            await self.live_view.load_frame(sub_id)
        return Stage(name, delay_s, _fetch)

    def follow_up_for(self, command: PilotCommand) -> List[Stage]:
        if command.is_movement():
            return [
                self._photo_stage(command.id),
                self._fetch_stage(command.id, self.timings.fetch_after_photo_s),
            ]
        if command.action == "take_photo":
            return [self._fetch_stage(command.id, self.timings.manual_photo_fetch_s)]
        return []

    # ---------- Chain runner ----------
    async def run_chain(self, name: str, stages: List[Stage]) -> None:
        for stage in stages:
            await self._sleep(stage.delay_s)
            try:
                await stage.action()
            except GatewayError as e:
                if stage.quiet:
                    log.debug("%s/%s dropped: %s", name, stage.name, e)
                    return
                raise

    def schedule(self, name: str, stages: List[Stage]) -> Optional[asyncio.Task]:
        if not stages:
            return None
        task = asyncio.get_running_loop().create_task(self.run_chain(name, stages))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    # ---------- Operations ----------
    async def pilot(self, sub_id: Optional[str], route: str = "C", action: str = "") -> Optional[asyncio.Task]:
        command = PilotCommand(id=sub_id, route=route, action=action)
        try:
            await self.gateway.pilot(command)
        except GatewayError as e:
            self.state.log.append(f"Pilot failed: {e}")
            return None
        self.state.log.append(f"Pilot: id={command.id}, route={command.route}, action={command.action}")
        follow_up = self.schedule(f"pilot:{command.id}", self.follow_up_for(command))
        await self._refresh()
        return follow_up

    async def capture_and_load(self, sub_id: Optional[str]) -> Optional[asyncio.Task]:
        """Explicit photo for the given agent plus a later second fetch."""
        if not sub_id:
            return None
        await self.pilot(sub_id, "None", "take_photo")
        return self.schedule(
            f"capture:{sub_id}",
            [self._fetch_stage(sub_id, self.timings.capture_refetch_s, name="refetch")],
        )

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def shutdown(self) -> None:
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
