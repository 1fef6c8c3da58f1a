from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from ..config import CONFIG, Config
from ..gateway import RemoteGateway
from ..models import LaunchParams
from .dispatch import CommandDispatcher
from .liveview import LiveViewLoader
from .logsink import LogSink
from .radar import project_echoes
from .selection import SelectionReconciler
from .sequencer import CaptureTimings, MovementCaptureSequencer
from .state import SessionState
from .sync import StateSynchronizer


log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ConsoleSession:
    """One operator session: shared state plus the components acting on it."""

    def __init__(
        self,
        gateway: Optional[RemoteGateway] = None,
        config: Optional[Config] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        cfg = config or CONFIG
        self.config = cfg
        self.gateway = gateway or RemoteGateway(cfg.api_base_url, cfg.request_timeout_s)
        self.state = SessionState(log=LogSink(cfg.log_capacity, clock=clock))
        self.selection = SelectionReconciler(self.state)
        self.synchronizer = StateSynchronizer(
            self.state,
            self.gateway,
            interval_s=cfg.poll_interval_s,
            on_roster_changed=self.selection.on_roster_changed,
            sleep=sleep,
        )
        self.live_view = LiveViewLoader(self.state, self.gateway, cfg.live_view_refresh_s, sleep=sleep)
        self.selection.add_listener(self.live_view.on_selection_changed)
        self.sequencer = MovementCaptureSequencer(
            self.state,
            self.gateway,
            self.live_view,
            refresh=self.synchronizer.refresh,
            timings=CaptureTimings(
                photo_delay_s=cfg.photo_delay_s,
                fetch_after_photo_s=cfg.fetch_after_photo_s,
                manual_photo_fetch_s=cfg.manual_photo_fetch_s,
                capture_refetch_s=cfg.capture_refetch_s,
            ),
            sleep=sleep,
        )
        self.dispatcher = CommandDispatcher(
            self.state, self.gateway, self.selection, self.sequencer, self.synchronizer
        )
        self._poll_task: Optional[asyncio.Task] = None

    # ---------- Lifecycle ----------
    def start(self) -> asyncio.Task:
        if self._poll_task is None or self._poll_task.done():
            log.debug("polling every %.1fs", self.synchronizer.interval_s)
            self._poll_task = asyncio.get_running_loop().create_task(self.synchronizer.run())
        return self._poll_task

    async def stop(self) -> None:
        self.synchronizer.stop()
        self.live_view.shutdown()
        self.sequencer.shutdown()
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await self.gateway.aclose()

    # ---------- View ----------
    def view(self) -> Dict[str, Any]:
        world = self.state.world
        frame = self.state.frame
        radar = self.state.radar
        return {
            "ship": world.ship.model_dump() if world and world.ship else None,
            "submarines": [s.model_dump() for s in self.state.roster],
            "selectedId": self.state.selected_id,
            "launchDraft": self.state.launch_draft.model_dump(),
            "liveView": {
                "picture": frame.data_uri,
                "id": frame.subject_id,
                "timestamp": frame.captured_at,
                "loading": frame.is_loading,
            },
            "autoRefresh": self.state.auto_refresh,
            "scan": self.state.scan.model_dump() if self.state.scan else None,
            "radar": [b.model_dump() for b in project_echoes(radar, self.config.radar_display_px)] if radar else [],
            "log": self.state.log.lines(),
        }

    # ---------- Command routing ----------
    async def handle_command(self, topic: str, data: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """Route a UI message to the owning component; returns an error string or None."""
        if not isinstance(data, dict):
            data = {}
        try:
            if topic == "key":
                await self.dispatcher.handle_key(str(data.get("key", "")), bool(data.get("inputFocused", False)))
                return None
            if topic == "ship.launch":
                params = LaunchParams.model_validate(data) if data else None
                await self.dispatcher.launch(params)
                return None
            if topic == "ship.draft":
                self.state.launch_draft = LaunchParams.model_validate({**self.state.launch_draft.model_dump(), **data})
                return None
            if topic == "ship.navigate":
                await self.dispatcher.navigate(data.get("rudder", "Center"), data.get("course", "Forward"))
                return None
            if topic == "ship.scan":
                await self.dispatcher.scan()
                return None
            if topic == "ship.radar":
                await self.dispatcher.radar()
                return None
            if topic == "session.reset":
                await self.dispatcher.reset_session()
                return None
            if topic == "log.clear":
                self.dispatcher.clear_log()
                return None
            if topic == "sub.start":
                await self.dispatcher.start_submarine()
                return None
            if topic == "sub.kill":
                await self.dispatcher.kill_submarine(data.get("id"))
                return None
            if topic == "sub.pilot":
                await self.dispatcher.pilot(data.get("id"), data.get("route", "C"), data.get("action", ""))
                return None
            if topic == "sub.select":
                self.selection.select(data.get("id"))
                return None
            if topic == "sub.measurements":
                await self.dispatcher.measurements(data.get("id"))
                return None
            if topic == "liveview.load":
                await self.live_view.load_frame(data.get("id", self.state.selected_id))
                return None
            if topic == "liveview.capture":
                await self.sequencer.capture_and_load(self.state.selected_id)
                return None
            if topic == "liveview.auto":
                if "enabled" in data:
                    self.live_view.set_auto_refresh(bool(data["enabled"]))
                else:
                    self.live_view.toggle_auto_refresh()
                return None
        except ValidationError as e:
            return f"invalid {topic} payload: {e.error_count()} error(s)"
        return f"unknown topic: {topic}"
