"""
Replayed platform capabilities built from recorded fixes and scans.

Used for offline runs of the command-line tool and as deterministic fakes.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from core.models import GeoCoordinate, ObservedSignal, PositionFix


class ReplayPositionProvider:
    """Returns recorded fixes in order; None entries simulate failed attempts"""

    def __init__(
        self,
        fixes: Iterable[Optional[PositionFix]] = (),
        permission_granted: bool = True,
        service_enabled: bool = True,
    ):
        self._fixes: List[Optional[PositionFix]] = list(fixes)
        self._permission = permission_granted
        self._service = service_enabled
        self.requests = 0

    async def permission_granted(self) -> bool:
        return self._permission

    async def service_enabled(self) -> bool:
        return self._service

    async def request_fix(self) -> PositionFix:
        index = self.requests
        self.requests += 1
        if index >= len(self._fixes) or self._fixes[index] is None:
            raise RuntimeError("No position fix available")
        return self._fixes[index]


class ReplayScanProvider:
    """Returns recorded scans in order, repeating the last one once exhausted"""

    def __init__(self, scans: Iterable[Sequence[ObservedSignal]] = (), supported: bool = True):
        self._scans: List[List[ObservedSignal]] = [list(s) for s in scans]
        self._supported = supported
        self.scans_started = 0
        self.reads = 0

    async def can_start_scan(self) -> bool:
        return self._supported

    async def can_get_results(self) -> bool:
        return self._supported

    async def start_scan(self) -> None:
        self.scans_started += 1

    async def scanned_results(self) -> Sequence[ObservedSignal]:
        if not self._scans:
            return []
        index = min(self.reads, len(self._scans) - 1)
        self.reads += 1
        return list(self._scans[index])


def fix_from_record(record: Mapping[str, Any]) -> Optional[PositionFix]:
    """Recorded fix {latitude, longitude, accuracy[, timestamp]}; null records stay None"""
    if record is None:
        return None
    captured = record.get('timestamp')
    if isinstance(captured, str):
        captured_at = datetime.fromisoformat(captured)
    elif isinstance(captured, datetime):
        captured_at = captured
    else:
        captured_at = datetime(1970, 1, 1, tzinfo=timezone.utc)
    return PositionFix(
        coordinate=GeoCoordinate(float(record['latitude']), float(record['longitude'])),
        accuracy_meters=float(record['accuracy']),
        captured_at=captured_at,
    )


def signal_from_record(record: Mapping[str, Any]) -> ObservedSignal:
    return ObservedSignal(
        bssid=str(record.get('bssid', '')),
        ssid=str(record.get('ssid', '')),
        strength_dbm=int(record['level']),
    )


def providers_from_scenario(scenario: Mapping[str, Any]):
    """
    Build (position provider, scan provider) from a scenario mapping

    Keys: fixes (list of fix records or nulls), scans (list of lists of
    signal records), permission_granted, service_enabled, scan_supported.
    """
    position_provider = ReplayPositionProvider(
        fixes=[fix_from_record(r) for r in scenario.get('fixes', []) or []],
        permission_granted=bool(scenario.get('permission_granted', True)),
        service_enabled=bool(scenario.get('service_enabled', True)),
    )
    scan_provider = ReplayScanProvider(
        scans=[[signal_from_record(s) for s in scan or []] for scan in scenario.get('scans', []) or []],
        supported=bool(scenario.get('scan_supported', True)),
    )
    return position_provider, scan_provider
