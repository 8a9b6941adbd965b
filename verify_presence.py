#!/usr/bin/env python3
"""
Presence Verification - decide whether this device is inside a configured classroom zone
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

import yaml

from utils.configuration import ConfigurationManager
from io_layer.zone_parser import ZoneConfigParser
from io_layer.replay_providers import ReplayPositionProvider, providers_from_scenario
from io_layer.wifi_scan import IwScanProvider
from io_layer.record_writer import save_attendance_record, to_attendance_record
from core.position_sampler import PositionSampler
from core.signal_scanner import SignalScanner
from core.orchestrator import VerificationOrchestrator
from core.models import VerificationResult

logger = logging.getLogger(__name__)


class PresenceVerificationSystem:
    """Presence verification main controller - wires configuration, platform capabilities and the orchestrator"""

    def __init__(self, config_file: Optional[str] = None, zones_file: Optional[str] = None):
        if config_file is None:
            config_file = './config/presence_config.yaml'
        self.config_manager = ConfigurationManager(config_file)
        self.config = self.config_manager.get_config()
        self.zones = ZoneConfigParser(
            zones_file or self.config.file_paths.zones_file,
            self.config.access_point_defaults,
        ).parse()
        self._logger = logging.getLogger(__name__)

    def build_orchestrator(self, scenario_file: Optional[str] = None) -> VerificationOrchestrator:
        if scenario_file:
            with open(scenario_file, 'r', encoding='utf-8') as f:
                scenario = yaml.safe_load(f) or {}
            position_provider, scan_provider = providers_from_scenario(scenario)
            self._logger.info("Replaying recorded capabilities from %s", scenario_file)
        else:
            # No positioning hardware binding on this host; wireless only
            position_provider = ReplayPositionProvider(service_enabled=False)
            scan_provider = IwScanProvider(self.config.signal_scan.interface)
            self._logger.info("Live wireless scan on %s", self.config.signal_scan.interface)
        return VerificationOrchestrator(
            PositionSampler(position_provider, self.config_manager),
            SignalScanner(scan_provider, self.config_manager),
            self.config_manager,
        )

    def run(self, zone_id: str, scenario_file: Optional[str] = None, output_file: Optional[str] = None) -> VerificationResult:
        zone = self.zones.get_zone(zone_id)
        access_point = self.zones.access_point_for(zone)
        orchestrator = self.build_orchestrator(scenario_file)

        self._logger.info("Step 1: Verifying presence in zone %s (%s, floor %d)", zone.id, zone.building_name, zone.floor_number)
        result = asyncio.run(orchestrator.verify_within(zone, access_point))

        self._logger.info("Step 2: Result")
        self._logger.info("   - Verified: %s", result.verified)
        self._logger.info("   - Reason: %s", result.reason_code.value)
        self._logger.info("   - Method: %s", result.method.value)
        self._logger.info("   - Message: %s", result.message)
        if result.floor_reason_text:
            self._logger.info("   - Floor check: %s", result.floor_reason_text)
        for step in result.trace.steps:
            self._logger.debug("   trace %s: %s", step.step, step.detail)

        output_file = output_file or self.config.file_paths.output_record_file
        if output_file:
            save_attendance_record(to_attendance_record(result, zone), output_file)
        return result


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Classroom presence verification (GPS + WiFi floor detection)')
    parser.add_argument('zone_id', help='Zone (room) identifier to verify against')
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='Configuration file path (supports .yaml and .json formats)')
    parser.add_argument('--zones', '-z', type=str, default=None, help='Zone and access point file (YAML or JSON)')
    parser.add_argument('--scenario', '-s', type=str, default=None,
                        help='Recorded fixes and scans to replay instead of live capabilities')
    parser.add_argument('--output', '-o', type=str, default=None, help='Write the attendance record to this JSON file')
    parser.add_argument('--log-level', default='INFO', help='Logging level (DEBUG, INFO, WARNING, ERROR)')
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if args.scenario and not os.path.exists(args.scenario):
        logger.error("Scenario file does not exist: %s", args.scenario)
        return 2

    try:
        system = PresenceVerificationSystem(args.config, args.zones)
        result = system.run(args.zone_id, args.scenario, args.output)
    except Exception as e:
        logger.error("System error: %s", e, exc_info=True)
        return 1
    return 0 if result.verified else 3


if __name__ == "__main__":
    sys.exit(main())
