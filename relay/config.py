"""
Runtime configuration read from environment variables
"""
import os
from dataclasses import dataclass

TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origin: str = "http://localhost:3000"
    evict_on_disconnect: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            host=os.environ.get("SERVER_HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", 5000)),
            cors_origin=os.environ.get("CORS_ORIGIN", "http://localhost:3000"),
            evict_on_disconnect=os.environ.get("RELAY_EVICT_ON_DISCONNECT", "").lower() in TRUE_VALUES,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
