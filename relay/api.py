"""
HTTP + WebSocket handlers for the chat relay
"""
import hashlib
import json
import logging

from aiohttp import web

from .router import EventRouter
from .state import Conflict
from .utils import clean_name

logger = logging.getLogger("chat_relay")

router_key = web.AppKey("router", EventRouter)

# ============================================================
# WEBSOCKET EVENT STREAM
# ============================================================

async def ws_chat(request: web.Request) -> web.WebSocketResponse:
    """
    WebSocket endpoint carrying named events.
    Frames are JSON objects: {"event": <name>, "data": <payload>}
    """
    router = request.app[router_key]
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    conn = router.connect(ws)
    logger.info(f"📡 WebSocket client connected: {conn.id} (total: {len(router.hub)})")

    try:
        async for msg in ws:
            if msg.type != web.WSMsgType.TEXT:
                continue
            # Handle ping/pong for keepalive
            if msg.data == "ping":
                await ws.send_str("pong")
                continue
            try:
                frame = json.loads(msg.data)
            except ValueError:
                logger.debug(f"Ignoring non-JSON frame from {conn.id}")
                continue
            if not isinstance(frame, dict):
                continue
            await router.dispatch(conn, frame.get("event"), frame.get("data"))
    except Exception:
        logger.exception(f"WebSocket session {conn.id} failed")
    finally:
        await router.disconnect(conn)
        logger.info(f"📡 WebSocket client disconnected: {conn.id} (remaining: {len(router.hub)})")

    return ws

# ============================================================
# USER IDENTITY
# ============================================================

async def api_login(request: web.Request) -> web.Response:
    """Register a username that nobody has used yet"""
    try:
        data = await request.json()
    except ValueError:
        data = None
    username = clean_name(data.get("username")) if isinstance(data, dict) else None
    if username is None:
        return web.json_response({"error": "Username is required"}, status=400)

    try:
        await request.app[router_key].register(username)
    except Conflict:
        logger.warning("Registration rejected, %s already taken", username)
        return web.json_response({"error": "Username already taken"}, status=400)

    return web.json_response({"username": username})


async def api_users(request: web.Request) -> web.Response:
    """Current roster with online flags"""
    registry = request.app[router_key].state.registry
    return web.json_response({"ok": True, "users": registry.snapshot()})

# ============================================================
# ROOMS
# ============================================================

async def api_rooms(request: web.Request) -> web.Response:
    """List rooms and their members with ETag caching"""
    directory = request.app[router_key].state.directory
    items = [
        {"name": name, "members": sorted(members)}
        for name, members in directory.rooms()
    ]

    content = json.dumps(items, sort_keys=True)
    etag = hashlib.md5(content.encode()).hexdigest()

    if request.headers.get("If-None-Match") == etag:
        return web.Response(status=304)

    response = web.json_response({"ok": True, "rooms": items})
    response.headers["ETag"] = etag
    return response
