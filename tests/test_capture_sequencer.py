import asyncio

import httpx
import pytest

from ship_api_fakes import FakeShipApi, VirtualClock, make_session, sub


def _pilot_bodies(api):
    return [r[3] for r in api.calls("/submarine/pilot")]


def test_movement_triggers_photo_then_fetch():
    api = FakeShipApi({"ship": None, "submarines": [sub("S1")]})
    clock = VirtualClock()

    async def scenario():
        sess = make_session(api, clock)
        await sess.synchronizer.refresh()
        follow_up = await sess.dispatcher.pilot("S1", "C", "")
        assert follow_up is not None
        await follow_up
        await sess.stop()
        return sess

    sess = asyncio.run(scenario())
    assert _pilot_bodies(api) == [
        {"id": "S1", "route": "C", "action": ""},
        {"id": "S1", "route": "None", "action": "take_photo"},
    ]
    fetches = api.calls("/submarine/picture")
    assert len(fetches) == 1
    assert fetches[0][2] == {"id": "S1"}
    assert clock.delays == [pytest.approx(0.2), pytest.approx(0.6)]
    # send, log, refresh
    assert "Pilot: id=S1, route=C, action=" in sess.state.log.lines()[-1]
    assert len(api.calls("/state")) == 2


def test_locate_has_no_follow_up():
    api = FakeShipApi({"ship": None, "submarines": [sub("S1")]})
    clock = VirtualClock()

    async def scenario():
        sess = make_session(api, clock)
        follow_up = await sess.dispatcher.pilot("S1", "None", "locate")
        await sess.sequencer.drain()
        await sess.stop()
        return follow_up

    assert asyncio.run(scenario()) is None
    assert len(api.calls("/submarine/pilot")) == 1
    assert api.calls("/submarine/picture") == []
    assert clock.delays == []


def test_explicit_photo_fetches_after_longer_delay():
    api = FakeShipApi({"ship": None, "submarines": [sub("S1")]})
    clock = VirtualClock()

    async def scenario():
        sess = make_session(api, clock)
        follow_up = await sess.dispatcher.pilot("S1", "None", "take_photo")
        await follow_up
        await sess.stop()

    asyncio.run(scenario())
    assert _pilot_bodies(api) == [{"id": "S1", "route": "None", "action": "take_photo"}]
    assert len(api.calls("/submarine/picture")) == 1
    assert clock.delays == [pytest.approx(0.8)]


def test_failed_auto_photo_is_silent_and_skips_fetch():
    api = FakeShipApi({"ship": None, "submarines": [sub("S1")]})
    clock = VirtualClock()
    outcomes = iter([httpx.Response(200, json={}), httpx.Response(503)])

    def pilot_then_fail(request):
        if request.url.path.endswith("/submarine/pilot"):
            api.requests.append((request.method, "/submarine/pilot", {}, None))
            return next(outcomes)
        return api(request)

    async def scenario():
        from shipapp.gateway import RemoteGateway
        from shipapp.config import Config
        from shipapp.core.session import ConsoleSession
        gateway = RemoteGateway("http://ship.test/api", transport=httpx.MockTransport(pilot_then_fail))
        sess = ConsoleSession(gateway=gateway, config=Config(), sleep=clock.sleep)
        follow_up = await sess.dispatcher.pilot("S1", "E", "")
        await follow_up
        await sess.stop()
        return sess

    sess = asyncio.run(scenario())
    assert len(api.calls("/submarine/pilot")) == 2
    assert api.calls("/submarine/picture") == []
    assert not any("failed" in line for line in sess.state.log.lines())


def test_failed_movement_logs_and_schedules_nothing():
    api = FakeShipApi()
    api.failing.add("/submarine/pilot")

    async def scenario():
        sess = make_session(api)
        follow_up = await sess.dispatcher.pilot("S1", "UP")
        await sess.stop()
        return sess, follow_up

    sess, follow_up = asyncio.run(scenario())
    assert follow_up is None
    assert sess.state.log.lines()[-1].endswith("Pilot failed: HTTP 500")
    assert api.calls("/state") == []


def test_capture_and_load_fetches_twice():
    api = FakeShipApi({"ship": None, "submarines": [sub("S1")]})
    clock = VirtualClock()

    async def scenario():
        sess = make_session(api, clock)
        await sess.synchronizer.refresh()
        await sess.handle_command("liveview.capture", {})
        await sess.sequencer.drain()
        await sess.stop()

    asyncio.run(scenario())
    assert _pilot_bodies(api) == [{"id": "S1", "route": "None", "action": "take_photo"}]
    assert len(api.calls("/submarine/picture")) == 2
    assert sorted(clock.delays) == [pytest.approx(0.8), pytest.approx(1.5)]
