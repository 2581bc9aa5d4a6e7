"""
Presence broadcasting: the public user list pushed to every client
"""
from .hub import ConnectionHub
from .state import SessionRegistry


async def broadcast_presence(hub: ConnectionHub, registry: SessionRegistry) -> None:
    """Send userList with the current roster to all connected clients"""
    await hub.emit("userList", registry.snapshot())
