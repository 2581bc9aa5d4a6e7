#!/usr/bin/env python3
"""
Chat Relay - Entry Point
Multi-room chat over WebSocket + presence + username registration
"""
import logging
from typing import Optional

from aiohttp import web

from relay.api import api_login, api_rooms, api_users, router_key, ws_chat
from relay.config import Settings
from relay.hub import ConnectionHub
from relay.router import EventRouter
from relay.state import ChatState

logger = logging.getLogger("chat_relay")


def cors_middleware(origin: str):
    """Allow cross-origin requests from a single configured origin"""
    cors_headers = {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, POST",
        "Access-Control-Allow-Headers": "Content-Type",
    }

    @web.middleware
    async def middleware(request, handler):
        if request.method == "OPTIONS":
            return web.Response(status=204, headers=cors_headers)

        response = await handler(request)
        # WebSocket responses are already prepared and sent
        if not response.prepared:
            response.headers.update(cors_headers)
        return response

    return middleware


def create_app(settings: Optional[Settings] = None) -> web.Application:
    """Create and configure the aiohttp application"""
    settings = settings or Settings.from_env()
    app = web.Application(middlewares=[cors_middleware(settings.cors_origin)])

    app[router_key] = EventRouter(
        ChatState(),
        ConnectionHub(),
        evict_on_disconnect=settings.evict_on_disconnect,
    )

    # API routes
    app.router.add_post("/login", api_login)
    app.router.add_get("/users", api_users)
    app.router.add_get("/rooms", api_rooms)

    # WebSocket for chat events
    app.router.add_get("/ws", ws_chat)

    logger.info("💬 Chat relay ready • CORS origin %s", settings.cors_origin)
    return app


def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    app = create_app(settings)

    logger.info(f"🚀 Starting server on {settings.host}:{settings.port}")
    web.run_app(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
