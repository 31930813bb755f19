"""
Admin arbitration.

Two policies exist as separate named variants and a process runs exactly one:

- EXPLICIT: the role starts unassigned and is granted to the first claimant
  while nobody holds it. The admin does not field a team, so the coordinator
  keeps the admin out of the lobby roster. Leaving clears the role.
- IMPLICIT: the first participant to join becomes admin. When the admin
  leaves, the role passes to the next remaining participant in join order.
  Claims are always denied.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .lobby import LobbyRegistry

logger = logging.getLogger(__name__)


class AdminPolicy(str, Enum):
    EXPLICIT = "explicit"
    IMPLICIT = "implicit"


@dataclass
class ClaimResult:
    """Outcome of an admin claim."""
    granted: bool
    reason: Optional[str] = None


class AdminArbiter(ABC):
    """Holds the single admin role; at most one holder at any instant."""

    policy: AdminPolicy
    admin_out_of_roster = False

    def __init__(self):
        self.admin_id: Optional[str] = None

    def current(self) -> Optional[str]:
        return self.admin_id

    def is_admin(self, conn_id: str) -> bool:
        return self.admin_id is not None and self.admin_id == conn_id

    def release(self, conn_id: str) -> bool:
        """Clear the role if held by conn_id. Returns True if it changed."""
        if not self.is_admin(conn_id):
            return False
        self.admin_id = None
        logger.info("Admin role released by %s", conn_id)
        return True

    @abstractmethod
    def claim(self, conn_id: str) -> ClaimResult:
        pass

    @abstractmethod
    def on_join(self, conn_id: str, registry: LobbyRegistry) -> bool:
        """React to a roster join. Returns True if the admin changed."""
        pass

    @abstractmethod
    def on_leave(self, conn_id: str, registry: LobbyRegistry) -> bool:
        """React to a departure (already removed from registry)."""
        pass


class ExplicitAdminArbiter(AdminArbiter):
    policy = AdminPolicy.EXPLICIT
    admin_out_of_roster = True

    def claim(self, conn_id: str) -> ClaimResult:
        if self.is_admin(conn_id):
            return ClaimResult(granted=False, reason="already-admin")
        if self.admin_id is not None:
            return ClaimResult(granted=False, reason="held")
        self.admin_id = conn_id
        logger.info("Admin role granted to %s", conn_id)
        return ClaimResult(granted=True)

    def on_join(self, conn_id: str, registry: LobbyRegistry) -> bool:
        return False

    def on_leave(self, conn_id: str, registry: LobbyRegistry) -> bool:
        return self.release(conn_id)


class ImplicitAdminArbiter(AdminArbiter):
    policy = AdminPolicy.IMPLICIT

    def claim(self, conn_id: str) -> ClaimResult:
        return ClaimResult(granted=False, reason="implicit-policy")

    def release(self, conn_id: str) -> bool:
        # The role only moves when its holder leaves
        return False

    def on_join(self, conn_id: str, registry: LobbyRegistry) -> bool:
        if self.admin_id is not None:
            return False
        self.admin_id = conn_id
        logger.info("Admin role assigned to first participant %s", conn_id)
        return True

    def on_leave(self, conn_id: str, registry: LobbyRegistry) -> bool:
        if not self.is_admin(conn_id):
            return False
        successor = registry.first()
        self.admin_id = successor.id if successor else None
        logger.info("Admin role handed from %s to %s", conn_id, self.admin_id)
        return True


def create_arbiter(policy) -> AdminArbiter:
    """Build the arbiter for a policy name or AdminPolicy."""
    policy = AdminPolicy(policy)
    if policy == AdminPolicy.IMPLICIT:
        return ImplicitAdminArbiter()
    return ExplicitAdminArbiter()
