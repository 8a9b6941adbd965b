from datetime import datetime, timezone

import pytest

from core.models import AccessPointConfig, GeoCoordinate, ObservedSignal, PositionFix, Zone
from core.orchestrator import VerificationOrchestrator
from core.position_sampler import PositionSampler
from core.signal_scanner import SignalScanner
from io_layer.replay_providers import ReplayPositionProvider, ReplayScanProvider
from utils.configuration import ConfigurationManager

CENTER = GeoCoordinate(13.067439, 80.237617)
AP_BSSID = 'a4:2b:b0:11:22:33'
AP_SSID = 'CS-Block-F2'
CAPTURED_AT = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def make_fix(lat=CENTER.latitude, lng=CENTER.longitude, accuracy=8.0):
    return PositionFix(GeoCoordinate(lat, lng), accuracy, CAPTURED_AT)


def far_fix(accuracy=8.0):
    # roughly 110 m north of the zone center
    return make_fix(lat=CENTER.latitude + 0.001, accuracy=accuracy)


def ap_signal(level, bssid=AP_BSSID, ssid=AP_SSID):
    return ObservedSignal(bssid=bssid, ssid=ssid, strength_dbm=level)


def other_signal(level=-70):
    return ObservedSignal(bssid='10:20:30:40:50:60', ssid='Library', strength_dbm=level)


@pytest.fixture
def config_manager():
    manager = ConfigurationManager()
    config = manager.get_config()
    config.position_sampling.retry_delay_s = 0.0
    config.signal_scan.settle_delay_s = 0.0
    return manager


@pytest.fixture
def zone():
    return Zone(
        id='room-204',
        name='Room 204',
        building_name='CS Block',
        floor_number=2,
        center=CENTER,
        width_meters=10,
        length_meters=12,
        assigned_access_point_id='ap-cs-2',
    )


@pytest.fixture
def access_point():
    return AccessPointConfig(
        id='ap-cs-2',
        bssid=AP_BSSID,
        ssid=AP_SSID,
        floor_number=2,
        same_floor_min_dbm=-55,
        different_floor_max_dbm=-75,
    )


@pytest.fixture
def build_orchestrator(config_manager):
    """Factory: orchestrator over replayed fixes and scans"""

    def _build(fixes=(), scans=(), permission_granted=True, service_enabled=True, scan_supported=True):
        position_provider = ReplayPositionProvider(fixes, permission_granted, service_enabled)
        scan_provider = ReplayScanProvider(scans, supported=scan_supported)
        orchestrator = VerificationOrchestrator(
            PositionSampler(position_provider, config_manager),
            SignalScanner(scan_provider, config_manager),
            config_manager,
        )
        return orchestrator, position_provider, scan_provider

    return _build
