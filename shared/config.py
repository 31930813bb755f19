"""
Configuration for the auction lobby server.
"""

import os

# Round timing - load from environment variables
DEFAULT_DURATION_SECONDS = float(os.environ.get("AUCTION_DEFAULT_DURATION", "10"))
SETTLE_GRACE_MS = int(os.environ.get("AUCTION_SETTLE_GRACE_MS", "250"))
TICK_INTERVAL_SECONDS = float(os.environ.get("AUCTION_TICK_INTERVAL", "1.0"))
MAX_DURATION_SECONDS = float(os.environ.get("AUCTION_MAX_DURATION", "3600"))

# Lobby
MAX_NAME_LENGTH = int(os.environ.get("AUCTION_MAX_NAME_LENGTH", "40"))
ADMIN_POLICY = os.environ.get("AUCTION_ADMIN_POLICY", "explicit")

LOG_LEVEL = os.environ.get("AUCTION_LOG_LEVEL", "INFO")

# Admin arbitration variants: policy name -> description
ADMIN_POLICIES = {
    "explicit": "Role starts unassigned; first claim wins; leaving clears it",
    "implicit": "First participant to join is admin; hand-off in join order",
}


def get_policy_name(name: str = None) -> str:
    """Validate an admin policy name (defaults to the configured one)."""
    name = (name or ADMIN_POLICY).strip().lower()
    if name not in ADMIN_POLICIES:
        raise ValueError(f"Unknown admin policy: {name}")
    return name
