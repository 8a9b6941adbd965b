import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

from core.models import ObservedSignal, ScanReport
from utils.configuration import ConfigurationManager


class SignalScanProvider(Protocol):
    """Platform wireless scan capability"""

    async def can_get_results(self) -> bool: ...
    async def can_start_scan(self) -> bool: ...
    async def start_scan(self) -> None: ...
    async def scanned_results(self) -> Sequence[ObservedSignal]: ...


class SignalScanner:
    """Signal scanner - triggers a wireless scan and returns what was observed; never raises"""

    def __init__(self, provider: SignalScanProvider, config_manager: ConfigurationManager):
        self.provider = provider
        self.config = config_manager.get_config().signal_scan
        self._logger = logging.getLogger(__name__)
        # start, settle and read form one scan; concurrent runs must not interleave them
        self._scan_lock: Optional[asyncio.Lock] = None

    async def scan(self) -> List[ObservedSignal]:
        """Observed signals; empty when scanning is unsupported, denied or failed"""
        report = await self.scan_report()
        return list(report.signals)

    async def scan_report(self) -> ScanReport:
        """
        Scan and report whether the platform could scan at all

        A fresh scan is started when the platform allows it and the settle delay
        awaited; otherwise the platform's cached results are read if permitted.
        Calls on one scanner are serialized so each reads its own scan.
        """
        if self._scan_lock is None:
            self._scan_lock = asyncio.Lock()
        async with self._scan_lock:
            return await self._scan_once()

    async def _scan_once(self) -> ScanReport:
        try:
            if await self.provider.can_start_scan():
                await self.provider.start_scan()
                if self.config.settle_delay_s > 0:
                    await asyncio.sleep(self.config.settle_delay_s)
            if not await self.provider.can_get_results():
                self._logger.info("Wireless scanning unsupported or not permitted")
                return ScanReport(signals=(), supported=False)
            results = await self.provider.scanned_results()
        except Exception as e:
            self._logger.warning("Wireless scan failed: %s", e)
            return ScanReport(signals=(), supported=False)

        signals = tuple(results or ())
        self._logger.debug("Scan observed %d signals", len(signals))
        return ScanReport(signals=signals, supported=True)
