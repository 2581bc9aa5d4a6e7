"""
In-memory state for the chat relay
Session registry (users) + room directory (memberships)
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple


class RelayError(Exception):
    """Base class for relay errors"""


class Conflict(RelayError):
    """Username is already registered"""

    def __init__(self, username: str):
        super().__init__(f"username already taken: {username}")
        self.username = username


@dataclass
class User:
    username: str
    online: bool = True
    connection_id: Optional[str] = None


# ============================================================
# SESSION REGISTRY
# ============================================================

class SessionRegistry:
    """username -> User, kept in insertion order"""

    def __init__(self):
        self._users: Dict[str, User] = {}

    def __contains__(self, username) -> bool:
        return username in self._users

    def __len__(self) -> int:
        return len(self._users)

    def get(self, username: str) -> Optional[User]:
        return self._users.get(username)

    def register_or_activate(self, username: str) -> User:
        user = self._users.get(username)
        if user is None:
            user = self._users[username] = User(username)
        else:
            user.online = True
        return user

    def reserve_unique(self, username: str) -> User:
        if username in self._users:
            raise Conflict(username)
        user = self._users[username] = User(username)
        return user

    def bind_connection(self, username: str, connection_id: str) -> None:
        # The previous handle, if any, is simply overwritten
        self._users[username].connection_id = connection_id

    def mark_offline(self, username: str) -> None:
        user = self._users.get(username)
        if user is not None:
            user.online = False

    def snapshot(self) -> List[dict]:
        return [
            {"username": user.username, "online": user.online}
            for user in self._users.values()
        ]


# ============================================================
# ROOM DIRECTORY
# ============================================================

class RoomDirectory:
    """room name -> member usernames. Empty rooms are kept."""

    def __init__(self):
        self._rooms: Dict[str, Set[str]] = {}

    def __contains__(self, room) -> bool:
        return room in self._rooms

    def join(self, room: str, username: str) -> bool:
        """Add username to room, creating it if needed. True if newly added."""
        members = self._rooms.setdefault(room, set())
        if username in members:
            return False
        members.add(username)
        return True

    def leave(self, room: str, username: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(username)

    def members(self, room: str) -> Set[str]:
        return set(self._rooms.get(room, ()))

    def rooms(self) -> List[Tuple[str, Set[str]]]:
        return [(name, set(members)) for name, members in self._rooms.items()]


class ChatState:
    """
    Process-wide chat state: one registry and one directory.
    Built once at startup and handed to the event router.
    """

    def __init__(self):
        self.registry = SessionRegistry()
        self.directory = RoomDirectory()

    def establish_identity(self, username: str, allow_reactivation: bool) -> User:
        """
        Bring a username online.

        Args:
            username: Non-empty, case-sensitive username
            allow_reactivation: True for live logins (known users come back
                online), False for registrations (known users raise Conflict)

        Returns:
            The User record
        """
        if allow_reactivation:
            return self.registry.register_or_activate(username)
        return self.registry.reserve_unique(username)
