from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..gateway import GatewayError, RemoteGateway
from .state import SessionState


log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class StateSynchronizer:
    """Pulls the authoritative world state into ``state.world``.

    ``refresh()`` is the only place the read model is replaced; the timer
    loop and every command's post-send refresh both go through it.
    """

    def __init__(
        self,
        state: SessionState,
        gateway: RemoteGateway,
        interval_s: float = 2.0,
        on_roster_changed: Optional[Callable[[], object]] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.state = state
        self.gateway = gateway
        self.interval_s = interval_s
        self._on_roster_changed = on_roster_changed
        self._sleep = sleep
        self._stop: Optional[asyncio.Event] = None

    async def refresh(self) -> bool:
        try:
            world = await self.gateway.get_state()
        except GatewayError as e:
            log.debug("state poll failed: %s", e)
            self.state.log.append(f"Failed to load state: {e}")
            return False
        self.state.world = world
        if self._on_roster_changed is not None:
            self._on_roster_changed()
        return True

    def replace(self, world) -> None:
        """Install a locally known snapshot (``None`` after a session reset)."""
        self.state.world = world
        if self._on_roster_changed is not None:
            self._on_roster_changed()

    async def run(self) -> None:
        # Fresh event per run so a stopped poller can be started again
        if self._stop is None or self._stop.is_set():
            self._stop = asyncio.Event()
        while not self._stop.is_set():
            await self.refresh()
            if self._stop.is_set():
                break
            await self._sleep(self.interval_s)

    def stop(self) -> None:
        if self._stop is None:
            self._stop = asyncio.Event()
        self._stop.set()
