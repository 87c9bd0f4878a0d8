"""Configuration for Anchor Ghost."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from a .env file when present.
load_dotenv()

AGENT_HOST = os.getenv("ANCHOR_AGENT_HOST", "127.0.0.1")

AGENT_PORT = int(os.getenv("ANCHOR_AGENT_PORT") or os.getenv("PORT") or "8787")

BRIDGE_TIMEOUT_S = float(os.getenv("ANCHOR_BRIDGE_TIMEOUT_S", "30"))

LOG_DIR = Path(os.getenv("ANCHOR_LOG_DIR", "logs"))

DEFAULT_BROWSER = os.getenv("ANCHOR_BROWSER", "chromium").lower()

PLAYWRIGHT_CHANNEL = os.getenv("PLAYWRIGHT_CHANNEL") or None

PLAYWRIGHT_EXECUTABLE = os.getenv("PLAYWRIGHT_EXECUTABLE") or None

PLACEHOLDER_PREFIX = "DEMO_"

PLACEHOLDER_FALLBACK_LABEL = "field"

MAX_SELECTOR_DEPTH = 5


def get_audit_log_path() -> Path | None:
    """Return the audit log path or None when auditing is not configured."""
    value = os.getenv("ANCHOR_AUDIT_LOG")
    return Path(value) if value else None
