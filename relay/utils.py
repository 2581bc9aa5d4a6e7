"""
Utility functions for connection IDs and payload checks
"""
import random
import string
from typing import Optional


def generate_connection_id(length: int = 12) -> str:
    """Generate a random connection ID"""
    alphabet = string.ascii_lowercase + string.digits
    return "conn_" + "".join(random.choice(alphabet) for _ in range(length))


def clean_name(value) -> Optional[str]:
    """Return value if it is a usable username/room name, else None"""
    if isinstance(value, str) and value:
        return value
    return None
