from __future__ import annotations
import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CONFIG
from .bus import BUS
from .core.session import ConsoleSession


log = logging.getLogger(__name__)

VIEW_TOPIC = "console:view"

app = FastAPI(title="Ocean Explorer Ship Console")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


session: Optional[ConsoleSession] = None
_push_task = None  # type: ignore[assignment]
_clients: Set[WebSocket] = set()


def get_session() -> ConsoleSession:
    global session
    if session is None:
        session = ConsoleSession()
    return session


async def _push_views() -> None:
    while True:
        await BUS.publish(VIEW_TOPIC, {"topic": "view", "data": get_session().view()})
        await asyncio.sleep(CONFIG.view_push_s)


@app.on_event("startup")
async def _startup() -> None:
    global _push_task
    logging.basicConfig(level=CONFIG.log_level.upper())
    sess = get_session()
    if CONFIG.start_polling:
        sess.start()
    _push_task = asyncio.create_task(_push_views())
    log.info("console polling %s every %.1fs", sess.gateway.base_url, CONFIG.poll_interval_s)


@app.on_event("shutdown")
async def _shutdown() -> None:
    global session
    if _push_task is not None:
        _push_task.cancel()
    if session is not None:
        await session.stop()
        session = None


@app.get("/console/view")
async def console_view() -> JSONResponse:
    return JSONResponse(get_session().view())


@app.post("/console/command")
async def console_command(message: Dict[str, Any]) -> JSONResponse:
    err = await get_session().handle_command(str(message.get("topic", "")), message.get("data") or {})
    if err:
        return JSONResponse({"ok": False, "error": err}, status_code=400)
    return JSONResponse({"ok": True})


@app.websocket("/ws/console")
async def ws_console(ws: WebSocket) -> None:
    await ws.accept()
    _clients.add(ws)

    async def forward_task():
        async for msg in BUS.subscribe(VIEW_TOPIC):
            try:
                await ws.send_text(json.dumps(msg))
            except Exception:
                break

    fwd = asyncio.create_task(forward_task())

    try:
        while True:
            raw = await ws.receive_text()
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if not isinstance(parsed, dict):
                continue
            topic = parsed.get("topic")
            data = parsed.get("data") or {}
            err = await get_session().handle_command(str(topic), data)
            if err:
                await ws.send_text(json.dumps({"topic": "error", "error": err}))
    except WebSocketDisconnect:
        pass
    finally:
        fwd.cancel()
        _clients.discard(ws)


@app.get("/console/health")
async def console_health() -> JSONResponse:
    sess = get_session()
    return JSONResponse({
        "ok": True,
        "api": sess.gateway.base_url,
        "clients": len(_clients),
        "autoRefresh": sess.live_view.auto_refresh_running,
    })
