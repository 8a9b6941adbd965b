import asyncio

import pytest

from core.signal_scanner import SignalScanner
from io_layer.replay_providers import ReplayScanProvider

from conftest import ap_signal, other_signal


class BrokenScanProvider(ReplayScanProvider):

    async def scanned_results(self):
        raise OSError("wireless driver went away")


class CachedOnlyScanProvider(ReplayScanProvider):
    """Cannot start scans but exposes the platform's cached results"""

    async def can_start_scan(self):
        return False


@pytest.mark.asyncio
async def test_scan_returns_observed_signals(config_manager):
    provider = ReplayScanProvider([[ap_signal(-50), other_signal()]])
    signals = await SignalScanner(provider, config_manager).scan()
    assert signals == [ap_signal(-50), other_signal()]
    assert provider.scans_started == 1


@pytest.mark.asyncio
async def test_unsupported_scan_is_empty(config_manager):
    provider = ReplayScanProvider([[ap_signal(-50)]], supported=False)
    scanner = SignalScanner(provider, config_manager)
    assert await scanner.scan() == []
    report = await scanner.scan_report()
    assert not report.supported
    assert provider.reads == 0


@pytest.mark.asyncio
async def test_scan_failure_is_empty(config_manager):
    report = await SignalScanner(BrokenScanProvider([[ap_signal(-50)]]), config_manager).scan_report()
    assert report.signals == ()
    assert not report.supported


@pytest.mark.asyncio
async def test_cached_results_used_when_scan_cannot_start(config_manager):
    provider = CachedOnlyScanProvider([[other_signal(-48)]])
    report = await SignalScanner(provider, config_manager).scan_report()
    assert report.supported
    assert report.signals == (other_signal(-48),)
    assert provider.scans_started == 0


@pytest.mark.asyncio
async def test_empty_scan_is_supported(config_manager):
    report = await SignalScanner(ReplayScanProvider([[]]), config_manager).scan_report()
    assert report.supported
    assert report.signals == ()


class InterleaveRecordingProvider(ReplayScanProvider):
    """Counts scans started while an earlier one is still unread"""

    def __init__(self, scans):
        super().__init__(scans)
        self.pending = False
        self.interleaved = 0

    async def start_scan(self):
        if self.pending:
            self.interleaved += 1
        self.pending = True
        await super().start_scan()

    async def scanned_results(self):
        self.pending = False
        return await super().scanned_results()


@pytest.mark.asyncio
async def test_concurrent_scans_read_their_own_results(config_manager):
    config_manager.get_config().signal_scan.settle_delay_s = 0.01
    provider = InterleaveRecordingProvider([[ap_signal(-50)], [other_signal()]])
    scanner = SignalScanner(provider, config_manager)
    first, second = await asyncio.gather(scanner.scan_report(), scanner.scan_report())
    assert provider.interleaved == 0
    assert first.signals == (ap_signal(-50),)
    assert second.signals == (other_signal(),)
