"""
Live Sealed-Bid Auction Module

Timed sealed-bid rounds inside a shared lobby, called by a single admin.
"""

from .server import run, create_app, coordinator, AuctionCoordinator
from .game import (
    AuctionLifecycle, BidLedger, Bid, Offer, Round, RoundState, Settlement,
    settle_round, rank_offers
)
from .admin import AdminPolicy, ClaimResult, create_arbiter
from .lobby import LobbyRegistry, Participant
from .clock import ClockSyncService, estimate_offset

__all__ = [
    "run", "create_app", "coordinator", "AuctionCoordinator",
    "AuctionLifecycle", "BidLedger", "Bid", "Offer", "Round", "RoundState", "Settlement",
    "settle_round", "rank_offers",
    "AdminPolicy", "ClaimResult", "create_arbiter",
    "LobbyRegistry", "Participant",
    "ClockSyncService", "estimate_offset",
]
