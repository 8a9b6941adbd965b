import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional

import yaml

from core.models import AccessPointConfig, GeoCoordinate, Zone
from utils.configuration import AccessPointDefaultsConfig
from utils.geometry import distance_meters

logger = logging.getLogger(__name__)

# Stored corners further than this from the derived ones are reported
CORNER_DRIFT_WARN_M = 0.5

_CORNER_KEYS = {
    'north_east': ('ne_lat', 'ne_lng'),
    'north_west': ('nw_lat', 'nw_lng'),
    'south_east': ('se_lat', 'se_lng'),
    'south_west': ('sw_lat', 'sw_lng'),
}


def _require(record: Mapping[str, Any], key: str, kind: str):
    if key not in record or record[key] is None:
        raise ValueError(f"{kind} record is missing '{key}': {dict(record)}")
    return record[key]


def zone_from_record(record: Mapping[str, Any]) -> Zone:
    """
    Build a Zone from a stored room record

    Stored corner columns (ne_lat, ...) are never trusted: corners are derived
    from the center and dimensions, and a warning is logged when the stored
    values have drifted from them.
    """
    try:
        zone = Zone(
            id=str(_require(record, 'id', 'Zone')),
            name=str(record.get('name', '')),
            building_name=str(record.get('building', '')),
            floor_number=int(_require(record, 'floor', 'Zone')),
            center=GeoCoordinate(
                float(_require(record, 'centerLatitude', 'Zone')),
                float(_require(record, 'centerLongitude', 'Zone')),
            ),
            width_meters=float(_require(record, 'widthMeters', 'Zone')),
            length_meters=float(_require(record, 'lengthMeters', 'Zone')),
            assigned_access_point_id=record.get('assignedWifiId'),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid zone record {record.get('id')!r}: {e}") from e

    for attr, (lat_key, lng_key) in _CORNER_KEYS.items():
        if record.get(lat_key) is None or record.get(lng_key) is None:
            continue
        stored = GeoCoordinate(float(record[lat_key]), float(record[lng_key]))
        drift = distance_meters(stored, getattr(zone.corners, attr))
        if drift > CORNER_DRIFT_WARN_M:
            logger.warning(
                "Zone %s: stored %s corner is %.2f m from the derived corner; using derived corners",
                zone.id, attr, drift,
            )
    return zone


def zone_to_record(zone: Zone) -> Dict[str, Any]:
    record = {
        'id': zone.id,
        'name': zone.name,
        'building': zone.building_name,
        'floor': zone.floor_number,
        'centerLatitude': zone.center.latitude,
        'centerLongitude': zone.center.longitude,
        'widthMeters': zone.width_meters,
        'lengthMeters': zone.length_meters,
        'assignedWifiId': zone.assigned_access_point_id,
    }
    for attr, (lat_key, lng_key) in _CORNER_KEYS.items():
        corner = getattr(zone.corners, attr)
        record[lat_key] = corner.latitude
        record[lng_key] = corner.longitude
    return record


def access_point_from_record(
    record: Mapping[str, Any],
    defaults: Optional[AccessPointDefaultsConfig] = None,
) -> AccessPointConfig:
    """Build an AccessPointConfig from a stored router record; threshold invariants are checked here"""
    defaults = defaults or AccessPointDefaultsConfig()
    try:
        return AccessPointConfig(
            id=str(record.get('id', '')),
            ssid=str(record.get('ssid') or ''),
            bssid=str(record.get('bssid') or ''),
            building_name=str(record.get('building', '')),
            floor_number=int(_require(record, 'floor', 'Access point')),
            location=record.get('location'),
            detection_threshold_dbm=int(record.get('signalStrengthThreshold', defaults.detection_threshold_dbm)),
            same_floor_min_dbm=int(record.get('sameFloorMinSignal', defaults.same_floor_min_dbm)),
            different_floor_max_dbm=int(record.get('differentFloorMaxSignal', defaults.different_floor_max_dbm)),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid access point record {record.get('id')!r}: {e}") from e


def access_point_to_record(access_point: AccessPointConfig) -> Dict[str, Any]:
    return {
        'id': access_point.id,
        'ssid': access_point.ssid,
        'bssid': access_point.bssid,
        'building': access_point.building_name,
        'floor': access_point.floor_number,
        'location': access_point.location,
        'signalStrengthThreshold': access_point.detection_threshold_dbm,
        'sameFloorMinSignal': access_point.same_floor_min_dbm,
        'differentFloorMaxSignal': access_point.different_floor_max_dbm,
    }


def _is_active(record: Mapping[str, Any]) -> bool:
    return record.get('isActive', True) not in (False, 0, '0', 'false')


class ZoneConfigParser:
    """Reads zones and access points from a YAML or JSON configuration file"""

    def __init__(self, config_file: str, defaults: Optional[AccessPointDefaultsConfig] = None):
        self.config_file = config_file
        self.defaults = defaults or AccessPointDefaultsConfig()
        self.zones: Dict[str, Zone] = {}
        self.access_points: Dict[str, AccessPointConfig] = {}

    def parse(self):
        if not isinstance(self.config_file, str) or not self.config_file:
            raise ValueError("Invalid zone configuration path provided to ZoneConfigParser")
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(f"Zone configuration file does not exist: {self.config_file}")
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                if self.config_file.endswith(('.yaml', '.yml')):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise RuntimeError(f"Failed to read zone configuration from '{self.config_file}'") from e
        self.load(data or {})
        logger.info(
            "Loaded %d zones and %d access points from %s",
            len(self.zones), len(self.access_points), self.config_file,
        )
        return self

    def load(self, data: Mapping[str, Any]):
        """Populate from an already-decoded mapping with 'zones' and 'access_points' lists"""
        for record in data.get('access_points', []) or []:
            if not _is_active(record):
                logger.debug("Skipping inactive access point %s", record.get('id'))
                continue
            access_point = access_point_from_record(record, self.defaults)
            self.access_points[access_point.id] = access_point
        for record in data.get('zones', []) or []:
            if not _is_active(record):
                logger.debug("Skipping inactive zone %s", record.get('id'))
                continue
            zone = zone_from_record(record)
            self.zones[zone.id] = zone
        return self

    def get_zone(self, zone_id: str) -> Zone:
        if zone_id not in self.zones:
            raise KeyError(f"Unknown zone: {zone_id}")
        return self.zones[zone_id]

    def access_point_for(self, zone: Zone) -> Optional[AccessPointConfig]:
        """Access point assigned to the zone, or None when unassigned or unknown"""
        if not zone.assigned_access_point_id:
            return None
        access_point = self.access_points.get(zone.assigned_access_point_id)
        if access_point is None:
            logger.warning(
                "Zone %s references unknown access point %s; verifying without WiFi",
                zone.id, zone.assigned_access_point_id,
            )
        return access_point

    def zone_ids(self) -> List[str]:
        return sorted(self.zones)
