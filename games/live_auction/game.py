"""
Live Sealed-Bid Auction - round state, bid ledger and settlement

The admin calls an item; every lobby participant except the admin may submit
a hidden bid until the deadline. Each participant's last bid before the
deadline counts. At the deadline the offers are ranked and revealed.

Key rules:
- One round at a time: a call while a round is open is ignored
- The deadline is fixed when the round opens and never extended
- Highest amount wins; equal amounts go to the bid accepted first
- No budgets: bidding is unlimited per round
"""

import itertools
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from shared.config import MAX_DURATION_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_ITEM_LABEL = "Unnamed item"
MIN_DURATION_SECONDS = 1


class RoundState(Enum):
    IDLE = "idle"
    OPEN = "open"
    SETTLING = "settling"


def _finite(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    return value if math.isfinite(value) else None


def normalize_duration(seconds, max_seconds: float = MAX_DURATION_SECONDS) -> Optional[float]:
    """Duration in seconds, raised to the minimum; None if unusable or above max_seconds."""
    value = _finite(seconds)
    if value is None or value <= 0 or value > max_seconds:
        return None
    return max(MIN_DURATION_SECONDS, value)


def is_valid_amount(amount) -> bool:
    value = _finite(amount)
    return value is not None and value >= 0


@dataclass
class Bid:
    """A participant's current bid within a round."""
    participant_id: str
    amount: float
    seq: int
    name: str


class BidLedger:
    """Per-round participant -> last accepted bid. Amounts stay private."""

    def __init__(self):
        self._bids: Dict[str, Bid] = {}
        self._seq = itertools.count(1)

    def __contains__(self, participant_id: str) -> bool:
        return participant_id in self._bids

    def __len__(self) -> int:
        return len(self._bids)

    def submit(self, participant_id: str, amount: float, name: str) -> Bid:
        # Overwrites move the bid's acceptance sequence forward
        bid = Bid(participant_id=participant_id, amount=amount,
                  seq=next(self._seq), name=name)
        self._bids[participant_id] = bid
        return bid

    def withdraw(self, participant_id: str) -> Optional[Bid]:
        return self._bids.pop(participant_id, None)

    def bidders(self) -> List[str]:
        return [b.participant_id for b in sorted(self._bids.values(), key=lambda b: b.seq)]

    def bids(self) -> List[Bid]:
        return list(self._bids.values())


@dataclass
class Offer:
    participant_id: str
    name: str
    amount: float

    def to_dict(self) -> dict:
        return {"id": self.participant_id, "name": self.name, "amount": self.amount}


@dataclass
class Round:
    """A single auction round."""
    epoch: int
    label: str
    duration_seconds: float
    started_at: int
    deadline: int
    state: RoundState = RoundState.OPEN
    ledger: BidLedger = field(default_factory=BidLedger)


@dataclass
class Settlement:
    """Result of a settled round."""
    epoch: int
    label: str
    offers: List[Offer]
    winner: Optional[Offer]


def rank_offers(ledger: BidLedger,
                resolve_name: Callable[[str], Optional[str]] = None) -> List[Offer]:
    """Sort offers by amount descending, earlier accepted bid first on ties."""
    ordered = sorted(ledger.bids(), key=lambda b: (-b.amount, b.seq))
    offers = []
    for bid in ordered:
        name = resolve_name(bid.participant_id) if resolve_name else None
        offers.append(Offer(participant_id=bid.participant_id,
                            name=name or bid.name,
                            amount=bid.amount))
    return offers


def settle_round(rnd: Round,
                 resolve_name: Callable[[str], Optional[str]] = None) -> Settlement:
    """Rank the ledger and pick the winner (None when nobody bid)."""
    offers = rank_offers(rnd.ledger, resolve_name)
    return Settlement(
        epoch=rnd.epoch,
        label=rnd.label,
        offers=offers,
        winner=offers[0] if offers else None,
    )


class AuctionLifecycle:
    """
    Idle -> Open -> Settling -> Idle, one round at a time.

    Every opened round gets a new epoch; timers carry the epoch they were
    scheduled for and anything that doesn't match the current round is stale.
    """

    def __init__(self):
        self.current: Optional[Round] = None
        self._epochs = itertools.count(1)

    @property
    def state(self) -> RoundState:
        return self.current.state if self.current else RoundState.IDLE

    @property
    def is_open(self) -> bool:
        return self.state == RoundState.OPEN

    def is_current(self, epoch: int) -> bool:
        return self.current is not None and self.current.epoch == epoch

    def open_round(self, label, duration_seconds: float, now: int) -> Optional[Round]:
        """Open a round; returns None if one is already active."""
        if self.current is not None:
            return None
        if not isinstance(label, str) or not label.strip():
            label = DEFAULT_ITEM_LABEL
        rnd = Round(
            epoch=next(self._epochs),
            label=label.strip(),
            duration_seconds=duration_seconds,
            started_at=now,
            deadline=now + int(round(duration_seconds * 1000)),
        )
        self.current = rnd
        logger.info("Round %s opened for %r, deadline %s", rnd.epoch, rnd.label, rnd.deadline)
        return rnd

    def accept_bid(self, participant_id: str, amount, name: str) -> Optional[Bid]:
        if not self.is_open or not is_valid_amount(amount):
            return None
        return self.current.ledger.submit(participant_id, float(amount), name)

    def withdraw_bid(self, participant_id: str) -> Optional[Bid]:
        if self.current is None:
            return None
        return self.current.ledger.withdraw(participant_id)

    def settle(self, epoch: int,
               resolve_name: Callable[[str], Optional[str]] = None) -> Optional[Settlement]:
        """Settle the round for epoch; a stale epoch is a no-op."""
        if not self.is_current(epoch) or self.current.state != RoundState.OPEN:
            return None
        rnd = self.current
        rnd.state = RoundState.SETTLING
        result = settle_round(rnd, resolve_name)
        self.current = None
        winner = "%s (%g)" % (result.winner.name, result.winner.amount) if result.winner else "nobody"
        logger.info("Round %s settled: %d offers, winner %s", epoch, len(result.offers), winner)
        return result
