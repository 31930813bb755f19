"""Unit tests for the round lifecycle, bid ledger and settlement."""

import math

from games.live_auction.game import (
    AuctionLifecycle, BidLedger, RoundState, is_valid_amount, normalize_duration, rank_offers
)

NOW = 1_700_000_000_000


def test_open_round_fixes_deadline():
    lifecycle = AuctionLifecycle()
    rnd = lifecycle.open_round("Player A", 5, NOW)

    assert rnd.deadline == NOW + 5000
    assert rnd.epoch == 1
    assert lifecycle.state == RoundState.OPEN


def test_only_one_round_at_a_time():
    lifecycle = AuctionLifecycle()
    first = lifecycle.open_round("Player A", 5, NOW)

    assert lifecycle.open_round("Player B", 5, NOW) is None
    assert lifecycle.current is first


def test_blank_label_gets_default():
    lifecycle = AuctionLifecycle()
    assert lifecycle.open_round("   ", 5, NOW).label == "Unnamed item"


def test_ledger_last_bid_wins():
    ledger = BidLedger()
    ledger.submit("x", 5, "X")
    ledger.submit("x", 12, "X")

    offers = rank_offers(ledger)
    assert len(offers) == 1
    assert offers[0].amount == 12


def test_ties_go_to_earlier_accepted_bid():
    ledger = BidLedger()
    ledger.submit("x", 10, "X")
    ledger.submit("y", 10, "Y")
    assert rank_offers(ledger)[0].participant_id == "x"

    # Re-submitting moves x behind y
    ledger.submit("x", 10, "X")
    assert rank_offers(ledger)[0].participant_id == "y"


def test_settle_ranks_and_clears_round():
    lifecycle = AuctionLifecycle()
    rnd = lifecycle.open_round("Player A", 5, NOW)
    lifecycle.accept_bid("x", 10, "X")
    lifecycle.accept_bid("y", 20, "Y")
    lifecycle.accept_bid("y", 15, "Y")

    result = lifecycle.settle(rnd.epoch, {"y": "Yvonne"}.get)

    assert [(o.name, o.amount) for o in result.offers] == [("Yvonne", 15), ("X", 10)]
    assert result.winner.participant_id == "y"
    assert lifecycle.current is None
    assert lifecycle.state == RoundState.IDLE


def test_settle_without_bids():
    lifecycle = AuctionLifecycle()
    rnd = lifecycle.open_round("Player A", 5, NOW)

    result = lifecycle.settle(rnd.epoch)
    assert result.offers == []
    assert result.winner is None


def test_stale_epoch_is_noop():
    lifecycle = AuctionLifecycle()
    first = lifecycle.open_round("Player A", 5, NOW)
    lifecycle.settle(first.epoch)
    second = lifecycle.open_round("Player B", 5, NOW)

    assert second.epoch == first.epoch + 1
    assert lifecycle.settle(first.epoch) is None
    assert lifecycle.current is second


def test_bids_rejected_while_idle():
    lifecycle = AuctionLifecycle()
    assert lifecycle.accept_bid("x", 10, "X") is None


def test_amount_validation():
    assert is_valid_amount(0)
    assert is_valid_amount(12.5)
    assert not is_valid_amount(-1)
    assert not is_valid_amount(math.nan)
    assert not is_valid_amount(math.inf)
    assert not is_valid_amount("10")
    assert not is_valid_amount(True)


def test_duration_normalization():
    assert normalize_duration(5) == 5
    assert normalize_duration(0.5) == 1
    assert normalize_duration(0) is None
    assert normalize_duration(-3) is None
    assert normalize_duration(math.inf) is None
    assert normalize_duration("5") is None


def test_duration_upper_bound():
    assert normalize_duration(3600) == 3600
    assert normalize_duration(3601) is None
    assert normalize_duration(1e306) is None
    assert normalize_duration(10 ** 400) is None
    assert normalize_duration(90, max_seconds=60) is None


def test_huge_integer_amount_rejected():
    assert not is_valid_amount(10 ** 400)
