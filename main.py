#!/usr/bin/env python3
"""
Planning Poker - Entry Point
Room socket + health probe + rate limiting
"""
import asyncio
import logging
import os
import time
from collections import defaultdict

from aiohttp import web

from poker.api import HEARTBEAT_KEY, LOCK_KEY, ROUTER_KEY, healthz, ws_room
from poker.router import EventRouter

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("planning_poker")

WS_HEARTBEAT = float(os.environ.get("WS_HEARTBEAT", 30))
RATE_LIMIT_PER_MINUTE = int(os.environ.get("RATE_LIMIT_PER_MINUTE", 100))


def rate_limit_middleware(limit: int):
    """Per-IP limit on HTTP requests (health checks and socket handshakes)"""
    store = defaultdict(list)

    @web.middleware
    async def middleware(request, handler):
        if limit <= 0:
            return await handler(request)

        ip = request.remote
        now = time.time()

        # Clean old entries
        store[ip] = [t for t in store[ip] if now - t < 60]

        if len(store[ip]) >= limit:
            logger.warning(f"Rate limit exceeded for {ip}")
            return web.json_response(
                {"ok": False, "error": "Rate limit exceeded"},
                status=429
            )

        store[ip].append(now)
        return await handler(request)

    return middleware


def create_app(router: EventRouter = None,
               heartbeat: float = WS_HEARTBEAT,
               rate_limit: int = RATE_LIMIT_PER_MINUTE) -> web.Application:
    """Create and configure the aiohttp application"""
    app = web.Application(middlewares=[rate_limit_middleware(rate_limit)])
    app[ROUTER_KEY] = router if router is not None else EventRouter()
    app[LOCK_KEY] = asyncio.Lock()
    app[HEARTBEAT_KEY] = heartbeat

    app.router.add_get("/healthz", healthz)

    # WebSocket for the room
    app.router.add_get("/", ws_room)
    app.router.add_get("/ws", ws_room)

    logger.info("🃏 Planning poker server ready")
    return app


def main():
    app = create_app()
    port = int(os.environ.get("PORT", 3001))
    host = os.environ.get("SERVER_HOST", "0.0.0.0")

    logger.info(f"🚀 Starting server on {host}:{port}")

    web.run_app(app, host=host, port=port)


if __name__ == "__main__":
    main()
