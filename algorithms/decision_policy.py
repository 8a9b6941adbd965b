"""
Decision policy - maps (accuracy tier, containment, access point outcome) to a verdict
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple

from core.models import AccuracyTier, ReasonCode, VerificationMethod


class AccessPointOutcome(str, Enum):
    NOT_CONFIGURED = 'not_configured'
    CONFIRMED = 'confirmed'
    MISMATCH = 'mismatch'
    NOT_DETECTED = 'not_detected'     # scan saw other signals, not ours
    NO_SCAN_DATA = 'no_scan_data'     # scan empty or unsupported


class _Row(NamedTuple):
    verified: bool
    reason_code: ReasonCode
    method: VerificationMethod
    message: str


@dataclass(frozen=True)
class Decision:
    """Verdict for one evaluated position fix"""
    verified: bool
    reason_code: ReasonCode
    method: VerificationMethod
    message: str
    low_confidence: bool = False


_R = ReasonCode
_M = VerificationMethod
_O = AccessPointOutcome

# (inside, outcome) -> row; accuracy tier only adjusts message and confidence
POLICY_TABLE: Dict[Tuple[bool, AccessPointOutcome], _Row] = {
    (True, _O.NOT_CONFIGURED): _Row(True, _R.VERIFIED, _M.GPS, "Location verified via GPS{tier_note}"),
    (True, _O.CONFIRMED): _Row(True, _R.VERIFIED, _M.BOTH, "Location verified via GPS and WiFi floor check"),
    (True, _O.MISMATCH): _Row(False, _R.FLOOR_MISMATCH, _M.BOTH, "Floor mismatch: {floor_reason}"),
    (True, _O.NOT_DETECTED): _Row(
        False, _R.ACCESS_POINT_NOT_DETECTED, _M.GPS,
        "Please go to Floor {zone_floor} where the router \"{ap_name}\" is located.",
    ),
    (True, _O.NO_SCAN_DATA): _Row(True, _R.VERIFIED, _M.GPS, "Location verified via GPS{tier_note}, WiFi unavailable"),
    (False, _O.NOT_CONFIGURED): _Row(
        False, _R.OUTSIDE_ZONE, _M.GPS,
        "GPS indicates you are not inside the room. WiFi verification not available (no router configured).",
    ),
    (False, _O.CONFIRMED): _Row(
        True, _R.VERIFIED, _M.WIFI, "Location verified via WiFi floor detection (GPS inaccurate indoors)",
    ),
    (False, _O.MISMATCH): _Row(False, _R.FLOOR_MISMATCH, _M.WIFI, "Floor mismatch: {floor_reason}"),
    (False, _O.NOT_DETECTED): _Row(
        False, _R.OUTSIDE_ZONE, _M.GPS,
        "Please go to Floor {zone_floor} where the router \"{ap_name}\" is located.",
    ),
    (False, _O.NO_SCAN_DATA): _Row(
        False, _R.OUTSIDE_ZONE, _M.GPS,
        "Please go to Floor {zone_floor} where the router \"{ap_name}\" is located.",
    ),
}

_TIER_NOTES = {
    AccuracyTier.HIGH: '',
    AccuracyTier.MEDIUM: ' (medium accuracy)',
    AccuracyTier.LOW: ' (low accuracy, WiFi recommended)',
}


def decide(
    tier: AccuracyTier,
    inside: bool,
    outcome: AccessPointOutcome,
    zone_floor: int = 0,
    ap_name: str = '',
    floor_reason: Optional[str] = None,
) -> Decision:
    """
    Look up the verdict for one combination

    Args:
        tier: Accuracy tier of the fix
        inside: Containment result
        outcome: What the wireless check found
        zone_floor: Floor of the zone, for messages
        ap_name: Configured access point name, for messages
        floor_reason: Floor classification reason, for messages

    Returns:
        Decision
    """
    row = POLICY_TABLE[(bool(inside), outcome)]
    message = row.message.format(
        tier_note=_TIER_NOTES[tier],
        zone_floor=zone_floor,
        ap_name=ap_name,
        floor_reason=floor_reason or '',
    )
    low_confidence = row.verified and row.method is _M.GPS and tier is not AccuracyTier.HIGH
    return Decision(row.verified, row.reason_code, row.method, message, low_confidence)
