from __future__ import annotations
from typing import Awaitable, Callable, Dict, Optional, Tuple

from ..gateway import GatewayError, RemoteGateway
from ..models import LaunchParams, NavigateCommand, RadarSnapshot
from .selection import SelectionReconciler
from .sequencer import MovementCaptureSequencer
from .state import SessionState
from .sync import StateSynchronizer


SHIP_KEYS: Dict[str, Tuple[str, str]] = {
    "w": ("Center", "Forward"),
    "s": ("Center", "Backward"),
    "a": ("Left", "Forward"),
    "d": ("Right", "Forward"),
    "q": ("Left", "Backward"),
    "e": ("Right", "Backward"),
}

SUB_KEYS: Dict[str, str] = {
    "ArrowUp": "C",
    "ArrowDown": "DOWN",
    "ArrowLeft": "W",
    "ArrowRight": "E",
}


class CommandDispatcher:
    """Turns operator intents into ship API commands.

    Every command is: send, log a summary, refresh the read model. A failed
    send is logged and otherwise dropped.
    """

    def __init__(
        self,
        state: SessionState,
        gateway: RemoteGateway,
        selection: SelectionReconciler,
        sequencer: MovementCaptureSequencer,
        synchronizer: StateSynchronizer,
    ) -> None:
        self.state = state
        self.gateway = gateway
        self.selection = selection
        self.sequencer = sequencer
        self.synchronizer = synchronizer

    async def _command(self, label: str, send: Callable[[], Awaitable[object]], summary: Callable[[object], str]) -> bool:
        try:
            result = await send()
        except GatewayError as e:
            self.state.log.append(f"{label} failed: {e}")
            return False
        self.state.log.append(summary(result))
        await self.synchronizer.refresh()
        return True

    # ---------- Ship ----------
    async def launch(self, params: Optional[LaunchParams] = None) -> bool:
        params = params or self.state.launch_draft
        return await self._command(
            "Launch",
            lambda: self.gateway.launch(params),
            lambda _: f"Launch command sent: name={params.name}, sector=({params.x},{params.y}), dir=({params.dx},{params.dy})",
        )

    async def navigate(self, rudder: str, course: str) -> bool:
        command = NavigateCommand(rudder=rudder, course=course)
        return await self._command(
            "Navigate",
            lambda: self.gateway.navigate(command),
            lambda _: f"Navigate: rudder={command.rudder}, course={command.course}",
        )

    async def scan(self) -> bool:
        def _summary(result) -> str:
            self.state.scan = result
            return f"Scan: depth={result.depth}, stddev={result.stddev}"
        return await self._command("Scan", self.gateway.scan, _summary)

    async def radar(self) -> bool:
        ship = self.state.world.ship if self.state.world else None
        # Pin the ship's sector now so later movement does not skew the blips
        captured = ship.sector.model_copy() if ship and ship.sector else None

        def _summary(result) -> str:
            self.state.radar = RadarSnapshot(echoes=result.echoes, ship_sector_at_capture=captured)
            return f"Radar: {len(result.echoes)} echo(s)"
        return await self._command("Radar", self.gateway.radar, _summary)

    async def reset_session(self) -> bool:
        try:
            await self.gateway.reset()
        except GatewayError as e:
            self.state.log.append(f"Reset failed: {e}")
            return False
        self.state.log.append("Session reset (ship and submarines cleared)")
        self.state.radar = None
        self.state.scan = None
        self.synchronizer.replace(None)
        return True

    def clear_log(self) -> None:
        self.state.log.clear()
        self.state.radar = None

    # ---------- Submersibles ----------
    async def start_submarine(self) -> bool:
        return await self._command(
            "Submarine start",
            self.gateway.start_submarine,
            lambda _: "Submarine started",
        )

    async def kill_submarine(self, sub_id: Optional[str]) -> bool:
        return await self._command(
            "Kill",
            lambda: self.gateway.kill_submarine(sub_id),
            lambda _: f"Submarine killed: {sub_id}",
        )

    async def pilot(self, sub_id: Optional[str], route: str = "C", action: str = ""):
        return await self.sequencer.pilot(sub_id, route, action)

    async def measurements(self, sub_id: Optional[str] = None) -> bool:
        try:
            summary = await self.gateway.measurements(sub_id)
        except GatewayError as e:
            self.state.log.append(f"Measurements failed: {e}")
            return False
        if sub_id:
            self.state.log.append(f"Measurements for {sub_id}: {summary.count or 0}")
        else:
            self.state.log.append(
                f"Measurements: {summary.total_measurements or 0} across {len(summary.submarines)} submarine(s)"
            )
        return True

    # ---------- Keyboard ----------
    async def handle_key(self, key: str, text_input_focused: bool = False) -> bool:
        """Dispatch a key press; returns True when a binding fired."""
        if text_input_focused:
            return False
        ship_binding = SHIP_KEYS.get(key.lower()) if len(key) == 1 else None
        if ship_binding is not None:
            await self.navigate(*ship_binding)
            return True
        route = SUB_KEYS.get(key)
        if route is None:
            return False
        if not self.state.roster:
            return False
        # May be None for a submersible that has not reported its id yet
        target = self.selection.target_or_first()
        await self.pilot(target, route)
        return True
