from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


# Accuracy tier boundaries (meters)
HIGH_ACCURACY_THRESHOLD_M = 10.0
MEDIUM_ACCURACY_THRESHOLD_M = 30.0


class AccuracyTier(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @classmethod
    def from_accuracy(cls, accuracy_m: float) -> 'AccuracyTier':
        if accuracy_m <= HIGH_ACCURACY_THRESHOLD_M:
            return cls.HIGH
        if accuracy_m <= MEDIUM_ACCURACY_THRESHOLD_M:
            return cls.MEDIUM
        return cls.LOW


class VerificationMethod(str, Enum):
    GPS = 'gps'
    WIFI = 'wifi'
    BOTH = 'both'
    NONE = 'none'


class ReasonCode(str, Enum):
    VERIFIED = 'verified'
    PERMISSION_DENIED = 'permission_denied'
    SERVICE_DISABLED = 'service_disabled'
    SCAN_UNSUPPORTED = 'scan_unsupported'
    ACCESS_POINT_NOT_DETECTED = 'access_point_not_detected'
    FLOOR_MISMATCH = 'floor_mismatch'
    OUTSIDE_ZONE = 'outside_zone'
    TIMEOUT = 'timeout'
    UNAVAILABLE = 'unavailable'


class PositionAvailability(str, Enum):
    AVAILABLE = 'available'
    PERMISSION_DENIED = 'permission_denied'
    SERVICE_DISABLED = 'service_disabled'


@dataclass(frozen=True)
class GeoCoordinate:
    """Latitude/longitude pair in degrees"""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")


@dataclass(frozen=True)
class ZoneCorners:
    """Four corners of a rectangular zone"""
    north_east: GeoCoordinate
    north_west: GeoCoordinate
    south_east: GeoCoordinate
    south_west: GeoCoordinate

    def ring(self) -> Tuple[GeoCoordinate, ...]:
        """Corners as a closed-order ring (NW, NE, SE, SW)."""
        return (self.north_west, self.north_east, self.south_east, self.south_west)


@dataclass(frozen=True)
class Zone:
    """Rectangular classroom zone; corners are always derived from center and dimensions"""
    id: str
    building_name: str
    floor_number: int
    center: GeoCoordinate
    width_meters: float
    length_meters: float
    name: str = ''
    assigned_access_point_id: Optional[str] = None
    corners: ZoneCorners = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        if self.width_meters <= 0 or self.length_meters <= 0:
            raise ValueError(
                f"Zone {self.id!r} dimensions must be positive, got {self.width_meters} x {self.length_meters}"
            )
        # Imported here: utils.geometry depends on this module
        from utils.geometry import compute_corners
        object.__setattr__(
            self, 'corners', compute_corners(self.center, self.width_meters, self.length_meters)
        )


@dataclass(frozen=True)
class AccessPointConfig:
    """Configured access point with floor discrimination thresholds (dBm)"""
    bssid: str
    ssid: str
    floor_number: int
    id: str = ''
    building_name: str = ''
    location: Optional[str] = None
    detection_threshold_dbm: int = -70
    same_floor_min_dbm: int = -55
    different_floor_max_dbm: int = -75

    def __post_init__(self):
        if not self.bssid.strip() and not self.ssid.strip():
            raise ValueError("Access point needs a BSSID or an SSID")
        if self.same_floor_min_dbm <= self.different_floor_max_dbm:
            raise ValueError(
                f"Access point {self.ssid or self.bssid!r}: same_floor_min_dbm ({self.same_floor_min_dbm}) "
                f"must be greater than different_floor_max_dbm ({self.different_floor_max_dbm})"
            )


@dataclass(frozen=True)
class ObservedSignal:
    """One access point seen in a wireless scan"""
    bssid: str
    ssid: str
    strength_dbm: int


@dataclass(frozen=True)
class PositionFix:
    """Satellite position fix"""
    coordinate: GeoCoordinate
    accuracy_meters: float
    captured_at: datetime

    @property
    def accuracy_tier(self) -> AccuracyTier:
        return AccuracyTier.from_accuracy(self.accuracy_meters)


@dataclass(frozen=True)
class FloorClassification:
    """Outcome of signal-strength floor discrimination"""
    verified: bool
    signal_dbm: int
    reason: str
    conclusive: bool


@dataclass(frozen=True)
class ScanReport:
    """Signals returned by one scan, and whether the platform could scan at all"""
    signals: Tuple[ObservedSignal, ...]
    supported: bool = True


@dataclass(frozen=True)
class TraceStep:
    step: str
    detail: str


@dataclass(frozen=True)
class VerificationTrace:
    """Ordered record of the steps an orchestration took"""
    steps: Tuple[TraceStep, ...] = ()

    def add(self, step: str, detail: str) -> 'VerificationTrace':
        return VerificationTrace(self.steps + (TraceStep(step, detail),))

    def step_names(self) -> Tuple[str, ...]:
        return tuple(s.step for s in self.steps)


@dataclass(frozen=True)
class VerificationResult:
    """Final verdict of one orchestration run"""
    verified: bool
    reason_code: ReasonCode
    method: VerificationMethod
    message: str
    position: Optional[PositionFix] = None
    signal_evidence: Optional[ObservedSignal] = None
    floor_reason_text: str = ''
    low_confidence: bool = False
    trace: VerificationTrace = field(default_factory=VerificationTrace)

    @property
    def accuracy_tier(self) -> Optional[AccuracyTier]:
        return self.position.accuracy_tier if self.position is not None else None
