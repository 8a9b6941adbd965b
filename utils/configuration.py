"""
Configuration System - Centralized configuration management for presence verification
"""

import json
import yaml
import os
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class PositionSamplingConfig:
    """Configuration for satellite fix acquisition"""
    max_attempts: int = 5
    time_budget_s: float = 15.0
    attempt_timeout_s: float = 2.0
    retry_delay_s: float = 0.5
    # Evidence-only fix taken after a wireless accept
    opportunistic_max_attempts: int = 3
    opportunistic_time_budget_s: float = 10.0


@dataclass
class SignalScanConfig:
    """Configuration for wireless scans"""
    settle_delay_s: float = 2.0
    interface: str = 'wlan0'


@dataclass
class AccessPointDefaultsConfig:
    """Threshold defaults applied when a stored access point record omits them (dBm)"""
    detection_threshold_dbm: int = -70
    same_floor_min_dbm: int = -55
    different_floor_max_dbm: int = -75


@dataclass
class VerificationConfig:
    """Configuration for the caller-side orchestration guard"""
    overall_timeout_s: float = 30.0


@dataclass
class FilePathConfig:
    """Configuration for file paths"""
    zones_file: str = './config/zones.yaml'
    output_record_file: Optional[str] = None


@dataclass
class MainSystemConfig:
    """Main system configuration"""
    # Component configurations
    file_paths: FilePathConfig = None
    position_sampling: PositionSamplingConfig = None
    signal_scan: SignalScanConfig = None
    access_point_defaults: AccessPointDefaultsConfig = None
    verification: VerificationConfig = None

    def __post_init__(self):
        """Initialize sub-configurations if not provided"""
        if self.file_paths is None:
            self.file_paths = FilePathConfig()
        if self.position_sampling is None:
            self.position_sampling = PositionSamplingConfig()
        if self.signal_scan is None:
            self.signal_scan = SignalScanConfig()
        if self.access_point_defaults is None:
            self.access_point_defaults = AccessPointDefaultsConfig()
        if self.verification is None:
            self.verification = VerificationConfig()
        self.validate()

    def validate(self):
        sampling = self.position_sampling
        if sampling.max_attempts < 1 or sampling.opportunistic_max_attempts < 1:
            raise ValueError("position_sampling attempt counts must be at least 1")
        if sampling.time_budget_s <= 0 or sampling.attempt_timeout_s <= 0:
            raise ValueError("position_sampling time limits must be positive")
        if sampling.retry_delay_s < 0 or self.signal_scan.settle_delay_s < 0:
            raise ValueError("delays must not be negative")
        defaults = self.access_point_defaults
        if defaults.same_floor_min_dbm <= defaults.different_floor_max_dbm:
            raise ValueError(
                "access_point_defaults.same_floor_min_dbm must be greater than different_floor_max_dbm"
            )
        if self.verification.overall_timeout_s <= 0:
            raise ValueError("verification.overall_timeout_s must be positive")


_SECTIONS = {
    'file_paths': FilePathConfig,
    'position_sampling': PositionSamplingConfig,
    'signal_scan': SignalScanConfig,
    'access_point_defaults': AccessPointDefaultsConfig,
    'verification': VerificationConfig,
}


class ConfigurationManager:
    """
    Centralized configuration management system
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_file: Path to configuration file (YAML or JSON)
        """
        self.logger = logging.getLogger(__name__)
        self.config_file = config_file
        self.config = MainSystemConfig()

        if config_file and os.path.exists(config_file):
            self.load_from_file(config_file)
        elif config_file:
            self.logger.info("Configuration file %s not found, using defaults", config_file)

    def load_from_file(self, config_file: str) -> MainSystemConfig:
        """
        Load configuration from YAML or JSON file

        Args:
            config_file: Path to configuration file

        Returns:
            Loaded MainSystemConfig object
        """
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.endswith('.yaml') or config_file.endswith('.yml'):
                    config_dict = yaml.safe_load(f)
                else:
                    config_dict = json.load(f)

            self.config = self._dict_to_config(config_dict or {})
            self.logger.info("Configuration loaded from %s", config_file)

        except Exception as e:
            self.logger.error("Failed to load configuration from %s: %s", config_file, e)
            self.logger.info("Using default configuration")
            self.config = MainSystemConfig()

        return self.config

    def get_config(self) -> MainSystemConfig:
        """Get current configuration"""
        return self.config

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> MainSystemConfig:
        """Convert dictionary to MainSystemConfig object"""
        sections = {
            name: section_cls(**(config_dict.get(name) or {}))
            for name, section_cls in _SECTIONS.items()
        }
        main_config_dict = {k: v for k, v in config_dict.items() if k not in _SECTIONS}
        return MainSystemConfig(**sections, **main_config_dict)
