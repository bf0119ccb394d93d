"""
Service configuration loaded from the environment.
"""

import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables
load_dotenv()

# Fallback shared secret for broadcast creation. Deployments must set OWNER_KEY.
DEFAULT_OWNER_KEY = "queenriam123"


class Settings(BaseModel):
    """Runtime settings for the tracker service."""

    host: str = "0.0.0.0"
    port: int = 3000
    owner_key: str = DEFAULT_OWNER_KEY
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    @property
    def uses_default_owner_key(self) -> bool:
        return self.owner_key == DEFAULT_OWNER_KEY

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (and a .env file, if any)."""
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            owner_key=os.getenv("OWNER_KEY") or DEFAULT_OWNER_KEY,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
