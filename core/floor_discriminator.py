from typing import Optional, Sequence
import logging

from core.models import AccessPointConfig, FloorClassification, ObservedSignal
from utils.signal import normalize_bssid, normalize_ssid


class FloorDiscriminator:
    """Floor discriminator - matches the configured access point in a scan and infers floor placement from signal strength"""

    def __init__(self):
        self._logger = logging.getLogger(__name__)

    def match_access_point(
        self,
        observed: Sequence[ObservedSignal],
        config: AccessPointConfig,
    ) -> Optional[ObservedSignal]:
        """
        Find the configured access point among observed signals

        BSSID match (case-insensitive) takes priority over SSID match across the
        whole scan, so a same-named network never shadows the real hardware.

        Args:
            observed: Signals from one scan
            config: Configured access point

        Returns:
            The matching signal, or None when the access point was not seen
        """
        router_bssid = normalize_bssid(config.bssid)
        router_ssid = normalize_ssid(config.ssid)

        if router_bssid:
            for signal in observed:
                if normalize_bssid(signal.bssid) == router_bssid:
                    self._logger.debug("Matched access point by BSSID %s at %d dBm", signal.bssid, signal.strength_dbm)
                    return signal

        if router_ssid:
            for signal in observed:
                if normalize_ssid(signal.ssid) == router_ssid:
                    self._logger.debug(
                        "Matched access point by SSID %r at %d dBm (BSSID %s, expected %s)",
                        signal.ssid, signal.strength_dbm, signal.bssid, config.bssid,
                    )
                    return signal

        self._logger.debug("Access point %r (%s) not among %d observed signals", config.ssid, config.bssid, len(observed))
        return None

    def classify_floor(
        self,
        signal_dbm: int,
        config: AccessPointConfig,
        zone_floor: int,
    ) -> FloorClassification:
        """
        Classify floor placement from the matched access point's signal strength

        Strong signal (>= same_floor_min_dbm) is conclusive: verified only when the
        access point's floor is the zone's floor. Weak signal (<= different_floor_max_dbm)
        is always rejected. In between, the reading is ambiguous and is accepted when the
        configured floors agree.
        """
        ap_floor = config.floor_number

        if signal_dbm >= config.same_floor_min_dbm:
            if ap_floor == zone_floor:
                return FloorClassification(
                    verified=True,
                    signal_dbm=signal_dbm,
                    reason=f"Strong signal ({signal_dbm} dBm) confirmed Floor {ap_floor}",
                    conclusive=True,
                )
            return FloorClassification(
                verified=False,
                signal_dbm=signal_dbm,
                reason=(
                    f"Floor mismatch: strong signal ({signal_dbm} dBm) indicates Floor {ap_floor}, "
                    f"but the room is on Floor {zone_floor}"
                ),
                conclusive=True,
            )

        if signal_dbm <= config.different_floor_max_dbm:
            return FloorClassification(
                verified=False,
                signal_dbm=signal_dbm,
                reason=(
                    f"Different floor suspected: weak signal ({signal_dbm} dBm). "
                    f"Expected Floor {zone_floor}."
                ),
                conclusive=False,
            )

        if ap_floor == zone_floor:
            return FloorClassification(
                verified=True,
                signal_dbm=signal_dbm,
                reason=f"Accepted with ambiguous signal ({signal_dbm} dBm) on Floor {zone_floor}",
                conclusive=False,
            )
        return FloorClassification(
            verified=False,
            signal_dbm=signal_dbm,
            reason=(
                f"Ambiguous floor mismatch: signal ({signal_dbm} dBm) is ambiguous, room is on "
                f"Floor {zone_floor} but the access point is on Floor {ap_floor}"
            ),
            conclusive=False,
        )
