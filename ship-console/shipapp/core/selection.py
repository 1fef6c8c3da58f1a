from __future__ import annotations
import logging
from typing import Callable, List, Optional, Sequence

from ..models import Submarine
from .state import SessionState


log = logging.getLogger(__name__)


def reconcile_selection(roster: Sequence[Submarine], current: Optional[str]) -> Optional[str]:
    if not roster:
        return None
    if current is not None and any(s.id == current for s in roster):
        return current
    return roster[0].id


class SelectionReconciler:
    """Keeps ``state.selected_id`` pointing at a live submersible."""

    def __init__(self, state: SessionState) -> None:
        self.state = state
        self._listeners: List[Callable[[Optional[str], Optional[str]], None]] = []

    def add_listener(self, fn: Callable[[Optional[str], Optional[str]], None]) -> None:
        self._listeners.append(fn)

    def _set(self, new_id: Optional[str]) -> Optional[str]:
        old_id = self.state.selected_id
        if new_id == old_id:
            return new_id
        self.state.selected_id = new_id
        log.debug("selection %s -> %s", old_id, new_id)
        for fn in self._listeners:
            fn(old_id, new_id)
        return new_id

    def on_roster_changed(self) -> Optional[str]:
        return self._set(reconcile_selection(self.state.roster, self.state.selected_id))

    def select(self, sub_id: Optional[str]) -> Optional[str]:
        # An explicit pick is still subject to the roster rule
        return self._set(reconcile_selection(self.state.roster, sub_id))

    def target_or_first(self) -> Optional[str]:
        roster = self.state.roster
        if not roster:
            return None
        current = self.state.selected_id
        if current is not None and any(s.id == current for s in roster):
            return current
        return roster[0].id
