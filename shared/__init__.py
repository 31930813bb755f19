"""
Shared components for the auction lobby server.
"""

from .server_base import ConnectionHub, BaseSessionManager, create_session_app, run_server
from .config import DEFAULT_DURATION_SECONDS, ADMIN_POLICIES, get_policy_name

__all__ = [
    'ConnectionHub', 'BaseSessionManager', 'create_session_app', 'run_server',
    'DEFAULT_DURATION_SECONDS', 'ADMIN_POLICIES', 'get_policy_name',
]
