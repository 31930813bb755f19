"""Message models for the live auction WebSocket protocol."""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt, TypeAdapter


# ---------------------------------------------------------------------------
# Client -> server
# ---------------------------------------------------------------------------

# JSON numbers only: booleans and numeric strings are rejected
Number = Union[StrictInt, StrictFloat]


class JoinLobby(BaseModel):
    type: Literal["join_lobby"]
    display_name: Any = None


class LeaveLobby(BaseModel):
    type: Literal["leave_lobby"]


class ClaimAdmin(BaseModel):
    type: Literal["claim_admin"]


class ReleaseAdmin(BaseModel):
    type: Literal["release_admin"]


class SetDuration(BaseModel):
    type: Literal["set_duration"]
    seconds: Number


class CallItem(BaseModel):
    type: Literal["call_item"]
    label: Any = None
    duration_override_seconds: Optional[Number] = None


class SubmitBid(BaseModel):
    type: Literal["submit_bid"]
    amount: Number


class ClockProbe(BaseModel):
    type: Literal["clock_probe"]
    echo: Optional[float] = None


ClientMessage = Annotated[
    Union[
        JoinLobby,
        LeaveLobby,
        ClaimAdmin,
        ReleaseAdmin,
        SetDuration,
        CallItem,
        SubmitBid,
        ClockProbe,
    ],
    Field(discriminator="type"),
]

_client_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: Any):
    """Validate an inbound frame; raises pydantic.ValidationError if malformed."""
    return _client_adapter.validate_python(data)


# ---------------------------------------------------------------------------
# Server -> client
# ---------------------------------------------------------------------------


class RosterEntry(BaseModel):
    id: str
    display_name: str


class OfferPayload(BaseModel):
    id: str
    name: str
    amount: float


class Welcome(BaseModel):
    type: Literal["welcome"] = "welcome"
    connection_id: str


class RosterUpdate(BaseModel):
    type: Literal["roster_update"] = "roster_update"
    participants: List[RosterEntry]


class AdminUpdate(BaseModel):
    type: Literal["admin_update"] = "admin_update"
    admin_id: Optional[str] = None


class DurationUpdate(BaseModel):
    type: Literal["duration_update"] = "duration_update"
    seconds: float


class RoundStarted(BaseModel):
    type: Literal["round_started"] = "round_started"
    epoch: int
    label: str
    duration_seconds: float
    deadline: int
    server_now: int


class RoundTick(BaseModel):
    type: Literal["round_tick"] = "round_tick"
    epoch: int
    server_now: int
    deadline: int


class BidAccepted(BaseModel):
    type: Literal["bid_accepted"] = "bid_accepted"
    amount: float


class BidMarked(BaseModel):
    type: Literal["bid_marked"] = "bid_marked"
    participant_id: str


class BidWithdrawn(BaseModel):
    type: Literal["bid_withdrawn"] = "bid_withdrawn"
    participant_id: str


class RoundSettled(BaseModel):
    type: Literal["round_settled"] = "round_settled"
    epoch: int
    label: str
    offers: List[OfferPayload]
    winner: Optional[OfferPayload] = None


class ClockReply(BaseModel):
    type: Literal["clock_reply"] = "clock_reply"
    server_now: int
    echo: Optional[float] = None
