"""
Server-authoritative clock and round-trip clock synchronization.

Clients send their local send-time as ``echo``; the server answers with its
own time and the echo. With symmetric latency the client estimates

    offset = server_now - (echo + rtt / 2)

and renders countdowns against ``local_now + offset``.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional


def now_ms() -> int:
    """Current server wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class ProbeReply:
    """Reply to a clock probe."""
    server_now: int
    echo: Optional[float] = None


def estimate_offset(echo: float, server_now: float, received_at: float) -> float:
    """
    Estimate a client's clock offset from one probe round trip.

    Args:
        echo: Client time when the probe was sent
        server_now: Server time in the reply
        received_at: Client time when the reply arrived

    Returns:
        Milliseconds to add to the client clock to get server time
    """
    one_way = max(0.0, received_at - echo) / 2
    return server_now - (echo + one_way)


class ClockSyncService:
    """Answers clock probes and supplies the reference clock for deadlines."""

    def __init__(self, clock: Callable[[], int] = now_ms):
        self.clock = clock

    def now(self) -> int:
        return self.clock()

    def probe(self, echo: Optional[float] = None) -> ProbeReply:
        return ProbeReply(server_now=self.clock(), echo=echo)
