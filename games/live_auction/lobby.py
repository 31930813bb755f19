"""
Lobby registry - connected participants in join order.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from shared.config import MAX_NAME_LENGTH

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "Bidder"


@dataclass
class Participant:
    """A live connection that joined the lobby."""
    id: str
    display_name: str
    joined_seq: int

    def to_dict(self) -> dict:
        return {"id": self.id, "display_name": self.display_name}


def placeholder_name(conn_id: str) -> str:
    return f"{PLACEHOLDER_PREFIX}-{conn_id[:4]}"


def clean_display_name(raw, conn_id: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Coerce a client-supplied name; anything unusable becomes a placeholder."""
    if not isinstance(raw, str):
        return placeholder_name(conn_id)
    name = " ".join(raw.split())[:max_length].strip()
    return name or placeholder_name(conn_id)


class LobbyRegistry:
    """Tracks participants; a rejoin replaces the earlier entry."""

    def __init__(self, max_name_length: int = MAX_NAME_LENGTH):
        self.max_name_length = max_name_length
        self._participants: Dict[str, Participant] = {}
        self._seq = itertools.count(1)

    def __contains__(self, conn_id: str) -> bool:
        return conn_id in self._participants

    def __len__(self) -> int:
        return len(self._participants)

    def get(self, conn_id: str) -> Optional[Participant]:
        return self._participants.get(conn_id)

    def join(self, conn_id: str, display_name=None) -> Participant:
        name = clean_display_name(display_name, conn_id, self.max_name_length)
        # Rejoining moves the entry to the end of the join order
        self._participants.pop(conn_id, None)
        participant = Participant(id=conn_id, display_name=name, joined_seq=next(self._seq))
        self._participants[conn_id] = participant
        logger.debug("Participant %s joined as %r", conn_id, name)
        return participant

    def leave(self, conn_id: str) -> Optional[Participant]:
        participant = self._participants.pop(conn_id, None)
        if participant:
            logger.debug("Participant %s left", conn_id)
        return participant

    def snapshot(self) -> List[Participant]:
        return sorted(self._participants.values(), key=lambda p: p.joined_seq)

    def first(self) -> Optional[Participant]:
        """Earliest-joined remaining participant."""
        roster = self.snapshot()
        return roster[0] if roster else None
