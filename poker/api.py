"""
HTTP and WebSocket handlers for the planning poker room
"""
import asyncio
import logging

from aiohttp import web

from .protocol import Outcome, encode
from .router import EventRouter
from .utils import generate_connection_id

logger = logging.getLogger("planning_poker")

ROUTER_KEY = web.AppKey("router", EventRouter)
LOCK_KEY = web.AppKey("room_lock", asyncio.Lock)
HEARTBEAT_KEY = web.AppKey("ws_heartbeat", float)

# Seconds a single recipient may hold up a fan-out
SEND_TIMEOUT = 2.0

_closing_tasks = set()

# ============================================================
# HEALTH
# ============================================================

async def healthz(request: web.Request) -> web.Response:
    """Liveness probe"""
    return web.Response(text="ok")

# ============================================================
# WEBSOCKET ROOM
# ============================================================

async def ws_room(request: web.Request):
    """WebSocket endpoint for the room; plain GETs just get "OK" back"""
    heartbeat = request.app[HEARTBEAT_KEY] or None
    ws = web.WebSocketResponse(heartbeat=heartbeat)
    if not ws.can_prepare(request).ok:
        return web.Response(text="OK")
    await ws.prepare(request)

    router = request.app[ROUTER_KEY]
    lock = request.app[LOCK_KEY]
    label = generate_connection_id()
    logger.info(f"📡 {label} connected from {request.remote}")

    async with lock:
        await deliver(router.handle_open(ws))

    try:
        async for msg in ws:
            if msg.type in (web.WSMsgType.TEXT, web.WSMsgType.BINARY):
                # Keepalive never reaches the room
                if msg.data == "ping":
                    await ws.send_str("pong")
                    continue
                async with lock:
                    outcome = router.handle_message(ws, msg.data)
                    await deliver(outcome)
                # Closing waits on the peer, so it happens outside the lock
                for conn in outcome.close:
                    await conn.close()
            elif msg.type == web.WSMsgType.ERROR:
                logger.debug(f"{label} closed with exception {ws.exception()}")
    finally:
        async with lock:
            await deliver(router.handle_close(ws))
        logger.info(f"📡 {label} disconnected")

    return ws


async def deliver(outcome: Outcome) -> None:
    """Send every delivery in order to every open target"""
    stalled = set()
    for delivery in outcome.deliveries:
        if not delivery.targets:
            continue
        data = encode(delivery.message)
        for ws in delivery.targets:
            # One dead or slow socket must not starve the rest
            if ws.closed or ws in stalled:
                continue
            try:
                await asyncio.wait_for(ws.send_str(data), SEND_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Dropping WebSocket that stopped reading")
                stalled.add(ws)
                drop_connection(ws)
            except Exception as e:
                logger.debug(f"Failed to send to WebSocket: {e}")


def drop_connection(ws) -> None:
    """Close a socket in the background so the room lock is not held meanwhile"""
    task = asyncio.ensure_future(ws.close())
    _closing_tasks.add(task)
    task.add_done_callback(_closing_tasks.discard)
