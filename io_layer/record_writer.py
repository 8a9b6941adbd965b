import json
import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.models import VerificationResult, Zone

logger = logging.getLogger(__name__)


def to_attendance_record(
    result: VerificationResult,
    zone: Zone,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Flatten a verification result into the record the attendance store persists

    Args:
        result: Verdict of one orchestration run
        zone: Zone that was verified
        timestamp: Record time (defaults to now, UTC)

    Returns:
        JSON-serializable dictionary
    """
    timestamp = timestamp or datetime.now(timezone.utc)
    position = result.position
    signal = result.signal_evidence
    return {
        'zoneId': zone.id,
        'floor': zone.floor_number,
        'verified': result.verified,
        'reasonCode': result.reason_code.value,
        'method': result.method.value,
        'message': result.message,
        'latitude': position.coordinate.latitude if position else None,
        'longitude': position.coordinate.longitude if position else None,
        'accuracy': position.accuracy_meters if position else None,
        'accuracyTier': result.accuracy_tier.value if result.accuracy_tier else None,
        'lowConfidence': result.low_confidence,
        'wifiBssid': signal.bssid if signal else None,
        'wifiSsid': signal.ssid if signal else None,
        'wifiSignalStrength': signal.strength_dbm if signal else None,
        'floorVerificationReason': result.floor_reason_text or None,
        'trace': [{'step': s.step, 'detail': s.detail} for s in result.trace.steps],
        'timestamp': timestamp.isoformat(),
    }


def save_attendance_record(record: Dict[str, Any], output_file: str) -> str:
    """Write one attendance record as JSON; returns the output path"""
    output_dir = os.path.dirname(output_file)
    if output_dir and not os.path.exists(output_dir):
        os.makedirs(output_dir, exist_ok=True)

    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(record, f, indent=2)
    logger.info("Attendance record written to %s", output_file)
    return output_file
