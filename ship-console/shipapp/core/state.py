from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import LaunchParams, LiveViewFrame, RadarSnapshot, ScanResult, Submarine, WorldState
from .logsink import LogSink


@dataclass
class SessionState:
    """Shared in-memory state for one operator session.

    Each field has one writer and is always replaced wholesale:
    - world: StateSynchronizer (and session reset)
    - selected_id: SelectionReconciler
    - frame / auto_refresh: LiveViewLoader
    - radar / scan: CommandDispatcher
    - launch_draft: the operator form
    """

    log: LogSink
    world: Optional[WorldState] = None
    selected_id: Optional[str] = None
    frame: LiveViewFrame = field(default_factory=LiveViewFrame)
    auto_refresh: bool = False
    radar: Optional[RadarSnapshot] = None
    scan: Optional[ScanResult] = None
    launch_draft: LaunchParams = field(default_factory=LaunchParams)

    @property
    def roster(self) -> List[Submarine]:
        if self.world is None:
            return []
        return list(self.world.submarines)
