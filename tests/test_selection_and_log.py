import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'ship-console')))

from shipapp.core.logsink import LogSink
from shipapp.core.selection import SelectionReconciler, reconcile_selection
from shipapp.core.state import SessionState
from shipapp.models import Submarine, WorldState


A = Submarine(id="A")
B = Submarine(id="B")


def test_reconcile_rules():
    assert reconcile_selection([], "A") is None
    assert reconcile_selection([], None) is None
    assert reconcile_selection([A, B], "C") == "A"
    assert reconcile_selection([A, B], None) == "A"
    assert reconcile_selection([A, B], "B") == "B"


def test_reconciler_updates_state_and_notifies_listeners():
    state = SessionState(log=LogSink())
    changes = []
    rec = SelectionReconciler(state)
    rec.add_listener(lambda old, new: changes.append((old, new)))

    state.world = WorldState(submarines=[A, B])
    assert rec.on_roster_changed() == "A"
    rec.select("B")
    assert state.selected_id == "B"

    # B disappears: fall back to the first remaining entry
    state.world = WorldState(submarines=[A])
    rec.on_roster_changed()
    assert state.selected_id == "A"

    state.world = WorldState(submarines=[])
    rec.on_roster_changed()
    assert state.selected_id is None
    assert changes == [(None, "A"), ("A", "B"), ("B", "A"), ("A", None)]


def test_explicit_select_of_unknown_agent_is_corrected():
    state = SessionState(log=LogSink(), world=WorldState(submarines=[A, B]))
    rec = SelectionReconciler(state)
    assert rec.select("ghost") == "A"


def test_log_evicts_oldest_past_capacity():
    sink = LogSink(capacity=200, clock=lambda: "08:15:00")
    for i in range(201):
        sink.append(f"msg {i}")
    entries = sink.entries()
    assert len(entries) == 200
    assert entries[0].message == "msg 1"
    assert entries[-1].message == "msg 200"
    assert sink.lines()[-1] == "[08:15:00] msg 200"


def test_log_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        LogSink(capacity=0)
