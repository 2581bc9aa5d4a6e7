"""
Event router: per-connection protocol state machine
Binds inbound client events to the registry/directory and the hub
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Set

from .hub import ConnectionHub
from .presence import broadcast_presence
from .state import ChatState, User
from .utils import clean_name, generate_connection_id

logger = logging.getLogger("chat_relay")

ANONYMOUS = "anonymous"
AUTHENTICATED = "authenticated"
CLOSED = "closed"


@dataclass
class Connection:
    """One live WebSocket. The username is set once, by login."""
    id: str
    username: Optional[str] = None
    closed: bool = False
    rooms: Set[str] = field(default_factory=set)

    @property
    def state(self) -> str:
        if self.closed:
            return CLOSED
        if self.username is None:
            return ANONYMOUS
        return AUTHENTICATED

    @property
    def authenticated(self) -> bool:
        return self.state == AUTHENTICATED


class EventRouter:
    def __init__(self, state: ChatState, hub: ConnectionHub,
                 evict_on_disconnect: bool = False):
        self.state = state
        self.hub = hub
        self.evict_on_disconnect = evict_on_disconnect
        self._handlers = {
            "login": self.on_login,
            "joinRoom": self.on_join_room,
            "leaveRoom": self.on_leave_room,
            "chatMessage": self.on_chat_message,
            "typing": self.on_typing,
            "stopTyping": self.on_stop_typing,
            "logout": self.on_logout,
        }

    # ============================================================
    # CONNECTION LIFECYCLE
    # ============================================================

    def connect(self, ws) -> Connection:
        conn = Connection(generate_connection_id())
        self.hub.attach(conn.id, ws)
        return conn

    async def disconnect(self, conn: Connection) -> None:
        self.hub.detach(conn.id)
        if not conn.authenticated:
            conn.closed = True
            return
        await self._teardown(conn)
        self.state.registry.mark_offline(conn.username)
        logger.info("👋 %s disconnected (%s)", conn.username, conn.id)
        await broadcast_presence(self.hub, self.state.registry)

    async def _teardown(self, conn: Connection) -> None:
        conn.closed = True
        rooms = sorted(conn.rooms)
        conn.rooms.clear()
        for room in rooms:
            self.hub.unsubscribe(conn.id, room)

        user = self.state.registry.get(conn.username)
        if not self.evict_on_disconnect or user is None or user.connection_id != conn.id:
            # Memberships stay in the directory; a newer login owns them on takeover
            return
        for room in rooms:
            self.state.directory.leave(room, conn.username)
            await self.hub.emit("userLeft", {"username": conn.username, "room": room}, room=room)

    async def dispatch(self, conn: Connection, event, data=None) -> None:
        """Run the handler for an inbound event. Unknown events are dropped."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("Dropping unknown event %r from %s", event, conn.id)
            return
        await handler(conn, data)

    # ============================================================
    # IDENTITY
    # ============================================================

    async def register(self, username: str) -> User:
        """Registration without a live connection. Raises Conflict."""
        user = self.state.establish_identity(username, allow_reactivation=False)
        logger.info("📝 Registered %s", username)
        await broadcast_presence(self.hub, self.state.registry)
        return user

    async def on_login(self, conn: Connection, data) -> None:
        username = clean_name(data)
        if username is None or conn.state != ANONYMOUS:
            logger.debug("Ignoring login on %s (state=%s)", conn.id, conn.state)
            return
        self.state.establish_identity(username, allow_reactivation=True)
        self.state.registry.bind_connection(username, conn.id)
        conn.username = username
        logger.info("👤 %s logged in (%s)", username, conn.id)
        await broadcast_presence(self.hub, self.state.registry)

    async def on_logout(self, conn: Connection, data) -> None:
        # Any known username may be named here, not only the caller's own
        username = clean_name(data)
        if username is None or username not in self.state.registry:
            return
        if conn.authenticated and username == conn.username:
            await self._teardown(conn)
        self.state.registry.mark_offline(username)
        logger.info("🚪 %s logged out", username)
        await broadcast_presence(self.hub, self.state.registry)

    # ============================================================
    # ROOMS
    # ============================================================

    async def on_join_room(self, conn: Connection, data) -> None:
        room = clean_name(data)
        if room is None or not conn.authenticated:
            return
        self.hub.subscribe(conn.id, room)
        self.state.directory.join(room, conn.username)
        conn.rooms.add(room)
        logger.info("✅ %s joined %s", conn.username, room)
        await self.hub.emit("userJoined", {"username": conn.username, "room": room}, room=room)

    async def on_leave_room(self, conn: Connection, data) -> None:
        room = clean_name(data)
        if room is None or not conn.authenticated or room not in self.state.directory:
            return
        self.hub.unsubscribe(conn.id, room)
        self.state.directory.leave(room, conn.username)
        conn.rooms.discard(room)
        logger.info("↩️ %s left %s", conn.username, room)
        await self.hub.emit("userLeft", {"username": conn.username, "room": room}, room=room)

    # ============================================================
    # MESSAGES / TYPING
    # Room membership is not checked for these events
    # ============================================================

    async def on_chat_message(self, conn: Connection, data) -> None:
        if not conn.authenticated or not isinstance(data, dict):
            return
        room = clean_name(data.get("room"))
        if room is None:
            return
        await self.hub.emit(
            "message",
            {"username": conn.username, "message": data.get("message")},
            room=room,
        )

    async def on_typing(self, conn: Connection, data) -> None:
        room = clean_name(data)
        if room is None or not conn.authenticated:
            return
        await self.hub.emit("userTyping", conn.username, room=room, skip=conn.id)

    async def on_stop_typing(self, conn: Connection, data) -> None:
        room = clean_name(data)
        if room is None or not conn.authenticated:
            return
        await self.hub.emit("userStoppedTyping", conn.username, room=room, skip=conn.id)
