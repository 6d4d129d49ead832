"""
Service configuration

Settings are read once from the environment (and a local .env file).
Required:
  - OPENAI_API_KEY
Optional:
  - OPENAI_MODEL, MCP_SERVER_URL, MCP_RELAY_URL, TOOL_TIMEOUT_SECONDS,
    TURN_TIMEOUT_SECONDS, MAX_ITERATIONS, CORS_ORIGINS, LOG_LEVEL
"""

import logging
import os
import sys

from dotenv import load_dotenv

from models import Location

load_dotenv()

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")

# Upstream aggregation service; only the relay endpoints talk to it directly
MCP_SERVER_URL = os.getenv("MCP_SERVER_URL", "http://18.61.195.193:8010").rstrip("/")

# Where tools send their calls. Defaults to this service's own relay route.
MCP_RELAY_URL = os.getenv("MCP_RELAY_URL", "http://localhost:8000/api/mcp-proxy")

TOOL_TIMEOUT_SECONDS = float(os.getenv("TOOL_TIMEOUT_SECONDS", "15"))
TURN_TIMEOUT_SECONDS = float(os.getenv("TURN_TIMEOUT_SECONDS", "30"))
MAX_ITERATIONS = int(os.getenv("MAX_ITERATIONS", "5"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Used when neither the request nor the conversation carries a location
DEFAULT_LOCATION = Location(name="Bengaluru, India", latitude=12.9716, longitude=77.5946)


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing."""


def get_openai_api_key() -> str:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY environment variable is required")
    return api_key


def validate_config() -> None:
    """Fail fast on startup if required settings are missing."""
    get_openai_api_key()


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once for the service."""
    level = level or LOG_LEVEL

    formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if level != "DEBUG":
        for logger_name in ["httpx", "httpcore", "openai", "asyncio"]:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
