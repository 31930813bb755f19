import asyncio
import logging
from typing import Callable, Optional

from fastapi import FastAPI
from pydantic import BaseModel, ValidationError

from shared.config import (
    DEFAULT_DURATION_SECONDS, SETTLE_GRACE_MS, TICK_INTERVAL_SECONDS, get_policy_name
)
from shared.server_base import BaseSessionManager, ConnectionHub, create_session_app, run_server
from games.live_auction.admin import create_arbiter
from games.live_auction.clock import ClockSyncService, now_ms
from games.live_auction.game import AuctionLifecycle, Round, normalize_duration
from games.live_auction.lobby import LobbyRegistry
from games.live_auction.messages import (
    AdminUpdate, BidAccepted, BidMarked, BidWithdrawn, CallItem, ClaimAdmin, ClockProbe,
    ClockReply, DurationUpdate, JoinLobby, LeaveLobby, OfferPayload, ReleaseAdmin,
    RosterEntry, RosterUpdate, RoundSettled, RoundStarted, RoundTick, SetDuration,
    SubmitBid, Welcome, parse_client_message,
)

logger = logging.getLogger(__name__)


class AuctionCoordinator(BaseSessionManager):
    """
    Owns the lobby, admin role, active round and bid ledger.

    Every inbound message and every timer firing runs under one lock, so each
    is handled to completion (broadcasts included) before the next one starts.
    Invalid or unauthorized input is dropped without a reply.
    """

    def __init__(self, policy=None,
                 default_duration: float = DEFAULT_DURATION_SECONDS,
                 grace_ms: int = SETTLE_GRACE_MS,
                 tick_interval: float = TICK_INTERVAL_SECONDS,
                 clock: Callable[[], int] = now_ms,
                 hub: ConnectionHub = None):
        super().__init__(hub)
        self.lobby = LobbyRegistry()
        self.arbiter = create_arbiter(get_policy_name(policy))
        self.lifecycle = AuctionLifecycle()
        self.clock_sync = ClockSyncService(clock)
        self.default_duration = normalize_duration(default_duration) or DEFAULT_DURATION_SECONDS
        self.grace_ms = grace_ms
        self.tick_interval = tick_interval
        self._lock = asyncio.Lock()
        self._deadline_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------ #
    # Connection lifecycle
    # ------------------------------------------------------------------ #

    async def on_connect(self, conn_id: str):
        async with self._lock:
            await self._send(conn_id, Welcome(connection_id=conn_id))
            await self._send(conn_id, ClockReply(server_now=self.clock_sync.now()))
            await self._send(conn_id, self._roster_message())
            await self._send(conn_id, AdminUpdate(admin_id=self.arbiter.current()))
            await self._send(conn_id, DurationUpdate(seconds=self.default_duration))
            rnd = self.lifecycle.current
            if self.lifecycle.is_open:
                # Late joiner catches up on the open round
                await self._send(conn_id, self._round_started_message(rnd))
                for bidder in rnd.ledger.bidders():
                    await self._send(conn_id, BidMarked(participant_id=bidder))

    async def on_disconnect(self, conn_id: str):
        async with self._lock:
            await self._depart(conn_id)

    async def handle_message(self, conn_id: str, data):
        try:
            msg = parse_client_message(data)
        except ValidationError as e:
            logger.debug("Dropping invalid message from %s: %s", conn_id, e.errors())
            return

        async with self._lock:
            if conn_id not in self.hub:
                return
            try:
                await self._dispatch(conn_id, msg)
            except Exception:
                logger.exception("Handler for %s from %s failed; message dropped", msg.type, conn_id)

    async def _dispatch(self, conn_id: str, msg):
        if isinstance(msg, JoinLobby):
            await self._join(conn_id, msg.display_name)
        elif isinstance(msg, LeaveLobby):
            await self._depart(conn_id)
        elif isinstance(msg, ClaimAdmin):
            await self._claim_admin(conn_id)
        elif isinstance(msg, ReleaseAdmin):
            if self.arbiter.release(conn_id):
                await self._admin_changed()
        elif isinstance(msg, SetDuration):
            await self._set_duration(conn_id, msg.seconds)
        elif isinstance(msg, CallItem):
            await self._call_item(conn_id, msg.label, msg.duration_override_seconds)
        elif isinstance(msg, SubmitBid):
            await self._submit_bid(conn_id, msg.amount)
        elif isinstance(msg, ClockProbe):
            reply = self.clock_sync.probe(msg.echo)
            await self._send(conn_id, ClockReply(server_now=reply.server_now, echo=reply.echo))
        else:
            logger.debug("Unhandled message type %s", type(msg).__name__)

    # ------------------------------------------------------------------ #
    # Lobby and admin
    # ------------------------------------------------------------------ #

    async def _join(self, conn_id: str, display_name):
        if self.arbiter.admin_out_of_roster and self.arbiter.is_admin(conn_id):
            logger.debug("Admin %s cannot join the roster", conn_id)
            return
        self.lobby.join(conn_id, display_name)
        await self._emit(self._roster_message())
        if self.arbiter.on_join(conn_id, self.lobby):
            await self._admin_changed()

    async def _depart(self, conn_id: str):
        if self.lobby.leave(conn_id):
            await self._emit(self._roster_message())
        if self.arbiter.on_leave(conn_id, self.lobby):
            await self._admin_changed()

    async def _claim_admin(self, conn_id: str):
        result = self.arbiter.claim(conn_id)
        if not result.granted:
            logger.debug("Admin claim from %s denied: %s", conn_id, result.reason)
            return
        if self.arbiter.admin_out_of_roster and self.lobby.leave(conn_id):
            await self._emit(self._roster_message())
        await self._admin_changed()

    async def _admin_changed(self):
        admin_id = self.arbiter.current()
        await self._emit(AdminUpdate(admin_id=admin_id))
        # The admin never keeps a bid in the ledger
        if admin_id and self.lifecycle.withdraw_bid(admin_id):
            logger.info("Withdrew bid of new admin %s", admin_id)
            await self._emit(BidWithdrawn(participant_id=admin_id))

    async def _set_duration(self, conn_id: str, seconds):
        if not self.arbiter.is_admin(conn_id):
            logger.debug("Non-admin %s tried to set duration", conn_id)
            return
        duration = normalize_duration(seconds)
        if duration is None:
            logger.debug("Dropping invalid duration %r", seconds)
            return
        self.default_duration = duration
        await self._emit(DurationUpdate(seconds=duration))

    # ------------------------------------------------------------------ #
    # Rounds
    # ------------------------------------------------------------------ #

    async def _call_item(self, conn_id: str, label, override):
        if not self.arbiter.is_admin(conn_id):
            logger.debug("Non-admin %s tried to call an item", conn_id)
            return
        duration = self.default_duration
        if override is not None:
            duration = normalize_duration(override)
            if duration is None:
                logger.debug("Dropping call with invalid duration %r", override)
                return
        rnd = self.lifecycle.open_round(label, duration, self.clock_sync.now())
        if rnd is None:
            logger.debug("Round already active; call from %s ignored", conn_id)
            return
        await self._emit(self._round_started_message(rnd))
        self._schedule_timers(rnd)

    async def _submit_bid(self, conn_id: str, amount):
        participant = self.lobby.get(conn_id)
        if participant is None or self.arbiter.is_admin(conn_id):
            logger.debug("Bid from %s rejected: not a bidder", conn_id)
            return
        bid = self.lifecycle.accept_bid(conn_id, amount, participant.display_name)
        if bid is None:
            logger.debug("Bid from %s rejected", conn_id)
            return
        await self._send(conn_id, BidAccepted(amount=bid.amount))
        await self._emit(BidMarked(participant_id=conn_id))

    def _schedule_timers(self, rnd: Round):
        delay = max(0, rnd.deadline - self.clock_sync.now()) / 1000 + self.grace_ms / 1000
        self._deadline_task = asyncio.create_task(self._settle_after(rnd.epoch, delay))
        if self.tick_interval and self.tick_interval > 0:
            self._tick_task = asyncio.create_task(self._tick_loop(rnd.epoch))

    async def _settle_after(self, epoch: int, delay: float):
        await asyncio.sleep(delay)
        try:
            await self.expire_round(epoch)
        except Exception:
            logger.exception("Settlement timer for round %s failed; firing dropped", epoch)

    async def _tick_loop(self, epoch: int):
        while True:
            await asyncio.sleep(self.tick_interval)
            async with self._lock:
                if not self.lifecycle.is_current(epoch):
                    return
                rnd = self.lifecycle.current
                try:
                    await self._emit(RoundTick(epoch=epoch, server_now=self.clock_sync.now(),
                                               deadline=rnd.deadline))
                except Exception:
                    logger.exception("Tick for round %s failed; firing dropped", epoch)

    async def expire_round(self, epoch: int):
        """Settle the round for epoch. Stale epochs are ignored."""
        async with self._lock:
            result = self.lifecycle.settle(epoch, self._name_of)
            if result is None:
                return
            self._cancel_timers()
            offers = [OfferPayload(**o.to_dict()) for o in result.offers]
            await self._emit(RoundSettled(
                epoch=result.epoch,
                label=result.label,
                offers=offers,
                winner=offers[0] if offers else None,
            ))

    def _cancel_timers(self):
        current = asyncio.current_task()
        for task in (self._deadline_task, self._tick_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._deadline_task = None
        self._tick_task = None

    async def shutdown(self):
        self._cancel_timers()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _name_of(self, conn_id: str) -> Optional[str]:
        participant = self.lobby.get(conn_id)
        return participant.display_name if participant else None

    def _roster_message(self) -> RosterUpdate:
        return RosterUpdate(participants=[RosterEntry(**p.to_dict()) for p in self.lobby.snapshot()])

    def _round_started_message(self, rnd: Round) -> RoundStarted:
        return RoundStarted(
            epoch=rnd.epoch,
            label=rnd.label,
            duration_seconds=rnd.duration_seconds,
            deadline=rnd.deadline,
            server_now=self.clock_sync.now(),
        )

    async def _emit(self, message: BaseModel):
        await self.broadcast(message.model_dump())

    async def _send(self, conn_id: str, message: BaseModel):
        await self.send(conn_id, message.model_dump())

    def status(self) -> dict:
        return {
            "status": "ok",
            "connections": len(self.hub),
            "participants": len(self.lobby),
            "admin_id": self.arbiter.current(),
            "round_open": self.lifecycle.is_open,
        }


coordinator = AuctionCoordinator()


def create_app(manager: AuctionCoordinator = None) -> FastAPI:
    return create_session_app(manager or coordinator, title="Live Sealed-Bid Auction")


# For debugging/running directly
def run(host: str = "0.0.0.0", port: int = 8000, policy: str = None):
    manager = AuctionCoordinator(policy=policy) if policy else coordinator
    run_server(create_app(manager), host=host, port=port)


if __name__ == "__main__":
    run()
