import pytest

from algorithms.decision_policy import POLICY_TABLE, AccessPointOutcome, decide
from core.models import AccuracyTier, ReasonCode, VerificationMethod

H, M, L = AccuracyTier.HIGH, AccuracyTier.MEDIUM, AccuracyTier.LOW
O = AccessPointOutcome
R = ReasonCode
GPS, WIFI, BOTH = VerificationMethod.GPS, VerificationMethod.WIFI, VerificationMethod.BOTH

ROWS = [
    # tier, inside, outcome, verified, reason, method, low_confidence
    (H, True, O.NOT_CONFIGURED, True, R.VERIFIED, GPS, False),
    (M, True, O.NOT_CONFIGURED, True, R.VERIFIED, GPS, True),
    (L, True, O.NOT_CONFIGURED, True, R.VERIFIED, GPS, True),
    (H, True, O.CONFIRMED, True, R.VERIFIED, BOTH, False),
    (M, True, O.CONFIRMED, True, R.VERIFIED, BOTH, False),
    (L, True, O.CONFIRMED, True, R.VERIFIED, BOTH, False),
    (H, True, O.MISMATCH, False, R.FLOOR_MISMATCH, BOTH, False),
    (M, True, O.MISMATCH, False, R.FLOOR_MISMATCH, BOTH, False),
    (L, True, O.MISMATCH, False, R.FLOOR_MISMATCH, BOTH, False),
    (H, True, O.NOT_DETECTED, False, R.ACCESS_POINT_NOT_DETECTED, GPS, False),
    (M, True, O.NOT_DETECTED, False, R.ACCESS_POINT_NOT_DETECTED, GPS, False),
    (L, True, O.NOT_DETECTED, False, R.ACCESS_POINT_NOT_DETECTED, GPS, False),
    (H, True, O.NO_SCAN_DATA, True, R.VERIFIED, GPS, False),
    (M, True, O.NO_SCAN_DATA, True, R.VERIFIED, GPS, True),
    (L, True, O.NO_SCAN_DATA, True, R.VERIFIED, GPS, True),
    (H, False, O.NOT_CONFIGURED, False, R.OUTSIDE_ZONE, GPS, False),
    (M, False, O.NOT_CONFIGURED, False, R.OUTSIDE_ZONE, GPS, False),
    (L, False, O.NOT_CONFIGURED, False, R.OUTSIDE_ZONE, GPS, False),
    (H, False, O.CONFIRMED, True, R.VERIFIED, WIFI, False),
    (M, False, O.CONFIRMED, True, R.VERIFIED, WIFI, False),
    (L, False, O.CONFIRMED, True, R.VERIFIED, WIFI, False),
    (H, False, O.MISMATCH, False, R.FLOOR_MISMATCH, WIFI, False),
    (M, False, O.MISMATCH, False, R.FLOOR_MISMATCH, WIFI, False),
    (L, False, O.MISMATCH, False, R.FLOOR_MISMATCH, WIFI, False),
    (H, False, O.NOT_DETECTED, False, R.OUTSIDE_ZONE, GPS, False),
    (M, False, O.NOT_DETECTED, False, R.OUTSIDE_ZONE, GPS, False),
    (L, False, O.NOT_DETECTED, False, R.OUTSIDE_ZONE, GPS, False),
    (H, False, O.NO_SCAN_DATA, False, R.OUTSIDE_ZONE, GPS, False),
    (M, False, O.NO_SCAN_DATA, False, R.OUTSIDE_ZONE, GPS, False),
    (L, False, O.NO_SCAN_DATA, False, R.OUTSIDE_ZONE, GPS, False),
]


@pytest.mark.parametrize('tier,inside,outcome,verified,reason,method,low_confidence', ROWS)
def test_policy_row(tier, inside, outcome, verified, reason, method, low_confidence):
    decision = decide(tier, inside, outcome, zone_floor=2, ap_name='CS-Block-F2', floor_reason='why')
    assert decision.verified is verified
    assert decision.reason_code is reason
    assert decision.method is method
    assert decision.low_confidence is low_confidence


def test_every_combination_has_a_row():
    assert len(ROWS) == len(AccuracyTier) * 2 * len(AccessPointOutcome)
    assert set(POLICY_TABLE) == {(inside, outcome) for inside in (True, False) for outcome in AccessPointOutcome}


def test_mismatch_never_accepted():
    for tier in AccuracyTier:
        for inside in (True, False):
            assert not decide(tier, inside, O.MISMATCH).verified


def test_messages_carry_context():
    assert 'Floor 3' in decide(H, False, O.NOT_DETECTED, zone_floor=3, ap_name='Lab-AP').message
    assert 'Lab-AP' in decide(H, False, O.NOT_DETECTED, zone_floor=3, ap_name='Lab-AP').message
    assert 'strong signal' in decide(H, True, O.MISMATCH, floor_reason='strong signal').message
    assert 'medium accuracy' in decide(M, True, O.NOT_CONFIGURED).message
    assert 'low accuracy' in decide(L, True, O.NOT_CONFIGURED).message
