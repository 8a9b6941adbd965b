import re
from typing import Optional, Sequence

import numpy as np

from core.models import ObservedSignal

_MAC_SEPARATORS = re.compile(r'[-.]')


def normalize_bssid(bssid: str) -> str:
    """
    Normalize a hardware address for comparison

    Lowercases, trims, and maps '-' or '.' separators to ':' so that
    'AA-BB-CC-DD-EE-FF' and 'aa:bb:cc:dd:ee:ff' compare equal.
    """
    return _MAC_SEPARATORS.sub(':', (bssid or '').strip().lower())


def normalize_ssid(ssid: str) -> str:
    return (ssid or '').strip().lower()


def strongest_signal(observed: Sequence[ObservedSignal]) -> Optional[ObservedSignal]:
    """
    Return the strongest observed signal

    Args:
        observed: Signals from one scan

    Returns:
        The signal with the highest dBm, the first one on ties, or None for an empty scan
    """
    if not observed:
        return None
    levels = np.array([s.strength_dbm for s in observed], dtype=float)
    return observed[int(np.argmax(levels))]


def is_valid_dbm(value) -> bool:
    """Plausible received signal strength (dBm) for a Wi-Fi scan entry"""
    try:
        level = float(value)
    except (TypeError, ValueError):
        return False
    return bool(np.isfinite(level)) and -120.0 <= level <= 0.0
