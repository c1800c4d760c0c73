from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from detection.fraud_scoring import FraudFlagType, FraudScorer
from tests.conftest import ACCT_A, BASE_TIME
from utils.config import FraudThresholds
from utils.models import TransactionType
from utils.results import RiskLevel


@pytest.fixture
def scorer():
    return FraudScorer()


def _flag_types(score):
    return [f.flag_type for f in score.flags]


def test_ordinary_transaction_scores_zero(scorer, make_tx):
    result = scorer.score(make_tx(amount="100"))

    assert result.score == 0
    assert result.risk_level == RiskLevel.LOW
    assert result.flags == []


def test_large_round_amount(scorer, make_tx):
    result = scorer.score(make_tx(amount="60000"))

    assert _flag_types(result) == [FraudFlagType.UNUSUAL_AMOUNT, FraudFlagType.ROUND_AMOUNT]
    assert result.score == 45
    assert result.risk_level == RiskLevel.MEDIUM


def test_amount_beyond_decimal_precision(scorer, make_tx):
    result = scorer.score(make_tx(amount="1E+40"))

    assert _flag_types(result) == [FraudFlagType.UNUSUAL_AMOUNT, FraudFlagType.ROUND_AMOUNT]


@pytest.mark.parametrize("amount", ["Infinity", "NaN"])
def test_non_finite_amount_skips_amount_checks(scorer, make_tx, amount):
    result = scorer.score(make_tx(amount=amount))

    assert result.flags == []
    assert scorer.get_transaction_count(ACCT_A) == 1
    assert scorer.get_daily_total(ACCT_A, now=BASE_TIME) == Decimal("0")

    later = scorer.score(make_tx(amount="100", minutes=60))
    assert later.risk_level == RiskLevel.LOW


def test_both_unusual_amount_flags_fire(scorer, make_tx):
    scorer.score(make_tx(amount="100", minutes=0))
    result = scorer.score(make_tx(amount="60001", minutes=60))

    assert _flag_types(result).count(FraudFlagType.UNUSUAL_AMOUNT) == 2
    assert result.score == 50


def test_velocity_counts_strictly_inside_the_hour(make_tx):
    scorer = FraudScorer(FraudThresholds(max_transactions_per_hour=1))
    scorer.score(make_tx(minutes=0))
    assert not scorer.score(make_tx(minutes=60)).has_flag(FraudFlagType.VELOCITY_EXCEEDED)

    scorer = FraudScorer(FraudThresholds(max_transactions_per_hour=1))
    scorer.score(make_tx(minutes=0))
    assert scorer.score(make_tx(minutes=59)).has_flag(FraudFlagType.VELOCITY_EXCEEDED)


def test_high_risk_country_is_case_insensitive(scorer, make_tx):
    result = scorer.score(make_tx(metadata={"country": "kp"}))

    assert result.has_flag(FraudFlagType.HIGH_RISK_COUNTRY)
    assert result.score == 35


def test_custom_country_list(make_tx):
    scorer = FraudScorer(high_risk_countries=["ru"])

    assert scorer.score(make_tx(metadata={"country": "RU"})).has_flag(FraudFlagType.HIGH_RISK_COUNTRY)
    assert not scorer.score(make_tx(metadata={"country": "KP"}, minutes=5)).flags


def test_rapid_succession(scorer, make_tx):
    scorer.score(make_tx(seconds=0))

    assert scorer.score(make_tx(seconds=10)).has_flag(FraudFlagType.RAPID_SUCCESSION)
    assert not scorer.score(make_tx(seconds=40)).has_flag(FraudFlagType.RAPID_SUCCESSION)


def test_amount_progression(scorer, make_tx):
    for hour, amount in enumerate(("100", "200", "300")):
        scorer.score(make_tx(amount=amount, minutes=hour * 60))

    result = scorer.score(make_tx(amount="50", minutes=180))

    assert _flag_types(result) == [FraudFlagType.AMOUNT_PROGRESSION]


def test_flat_amounts_are_not_a_progression(scorer, make_tx):
    for hour, amount in enumerate(("100", "100", "200")):
        scorer.score(make_tx(amount=amount, minutes=hour * 60))

    assert not scorer.score(make_tx(amount="50", minutes=180)).has_flag(FraudFlagType.AMOUNT_PROGRESSION)


def test_score_is_capped_at_100(make_tx):
    scorer = FraudScorer(FraudThresholds(max_amount="10", max_transactions_per_hour=1))
    scorer.score(make_tx(amount="100", metadata={"country": "KP"}))

    result = scorer.score(make_tx(amount="20000", seconds=10, metadata={"country": "KP"}))

    assert sum(f.severity for f in result.flags) > 100
    assert result.score == 100
    assert result.risk_level == RiskLevel.CRITICAL


def test_history_key_falls_back_to_user(scorer, make_tx):
    scorer.score(make_tx(tx_type=TransactionType.DEPOSIT, from_account=None, user_id="USER-9"))

    assert scorer.get_transaction_count("USER-9") == 1
    assert scorer.get_transaction_count(ACCT_A) == 0


def test_every_score_call_is_recorded(scorer, make_tx):
    for i in range(3):
        scorer.score(make_tx(minutes=i * 10))
    assert scorer.get_transaction_count(ACCT_A) == 3


def test_cleanup_and_daily_total(scorer, make_tx):
    now = BASE_TIME + timedelta(hours=30)
    scorer.score(make_tx(amount="100", minutes=0))          # 30h before now
    scorer.score(make_tx(amount="250", minutes=6 * 60))     # exactly 24h before now
    scorer.score(make_tx(amount="400", minutes=29 * 60))    # 1h before now

    assert scorer.get_daily_total(ACCT_A, now=now) == Decimal("400")

    removed = scorer.cleanup(now=now)

    assert removed == 2
    assert scorer.get_transaction_count(ACCT_A) == 1
