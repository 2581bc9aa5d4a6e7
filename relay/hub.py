"""
Connection hub: the only place that writes to sockets
Tracks live sockets and per-room broadcast groups
"""
import json
import logging
from typing import Any, Dict, Iterable, Optional, Set

logger = logging.getLogger("chat_relay")


class ConnectionHub:
    def __init__(self):
        # connection_id -> socket (anything with an async send_str)
        self._sockets: Dict[str, Any] = {}
        # room -> connection_ids subscribed to it
        self._groups: Dict[str, Set[str]] = {}

    def __len__(self) -> int:
        return len(self._sockets)

    def __contains__(self, connection_id) -> bool:
        return connection_id in self._sockets

    def attach(self, connection_id: str, ws) -> None:
        self._sockets[connection_id] = ws

    def detach(self, connection_id: str) -> None:
        """Forget a socket and drop it from every broadcast group"""
        self._sockets.pop(connection_id, None)
        for members in self._groups.values():
            members.discard(connection_id)

    def subscribe(self, connection_id: str, room: str) -> None:
        self._groups.setdefault(room, set()).add(connection_id)

    def unsubscribe(self, connection_id: str, room: str) -> None:
        members = self._groups.get(room)
        if members is not None:
            members.discard(connection_id)

    def group(self, room: str) -> Set[str]:
        return set(self._groups.get(room, ()))

    async def emit(self, event: str, data, room: Optional[str] = None,
                   skip: Optional[str] = None) -> None:
        """
        Send an event to every socket, or to a room's group when room is set.
        skip excludes one connection (the sender).
        """
        if room is None:
            targets: Iterable[str] = list(self._sockets)
        else:
            targets = [cid for cid in self._groups.get(room, ()) if cid in self._sockets]
        targets = [cid for cid in targets if cid != skip]
        if not targets:
            return

        message = json.dumps({"event": event, "data": data})

        dead = set()
        for cid in targets:
            ws = self._sockets.get(cid)
            if ws is None:
                continue
            try:
                await ws.send_str(message)
            except Exception as e:
                logger.debug(f"Failed to send {event} to {cid}: {e}")
                dead.add(cid)

        # Remove dead connections
        for cid in dead:
            self.detach(cid)
