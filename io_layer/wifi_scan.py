"""
Wireless scan provider backed by ``iw dev <iface> scan`` on Linux.

Scanning needs CAP_NET_ADMIN; without it ``iw`` fails and the provider
reports that it cannot start a scan, and falls back to the kernel's cached
results (``iw dev <iface> scan dump``) when those are readable.
"""

import asyncio
import logging
import os
import re
import shutil
from typing import List, Optional, Sequence

from core.models import ObservedSignal
from utils.signal import is_valid_dbm

logger = logging.getLogger(__name__)

_BSS_RE = re.compile(r'^BSS\s+([0-9a-fA-F:]{17})')
_SIGNAL_RE = re.compile(r'^\s*signal:\s*(-?\d+(?:\.\d+)?)\s*dBm')
_SSID_RE = re.compile(r'^\s*SSID:\s?(.*)$')


def parse_iw_scan(text: str) -> List[ObservedSignal]:
    """
    Parse ``iw`` scan output into observed signals

    Entries without a usable signal level are dropped. Hidden networks keep
    an empty SSID.
    """
    signals: List[ObservedSignal] = []
    bssid: Optional[str] = None
    ssid = ''
    level = None

    def flush():
        if bssid is not None and is_valid_dbm(level):
            signals.append(ObservedSignal(bssid=bssid, ssid=ssid, strength_dbm=int(round(float(level)))))

    for line in text.splitlines():
        m = _BSS_RE.match(line)
        if m:
            flush()
            bssid, ssid, level = m.group(1).lower(), '', None
            continue
        if bssid is None:
            continue
        m = _SIGNAL_RE.match(line)
        if m:
            level = m.group(1)
            continue
        m = _SSID_RE.match(line)
        if m and not ssid:
            ssid = m.group(1).strip()
    flush()
    return signals


class IwScanProvider:
    """
    Scan provider for a Linux wireless interface

    The output of start_scan() is held until the next scanned_results() call,
    so one instance must be driven through a single SignalScanner, which
    keeps each start and read together.
    """

    def __init__(self, interface: str = 'wlan0', command_timeout_s: float = 10.0):
        self._interface = interface
        self._timeout = command_timeout_s
        self._last_output: Optional[str] = None

    async def can_start_scan(self) -> bool:
        return self._interface_present()

    async def can_get_results(self) -> bool:
        return self._interface_present()

    async def start_scan(self) -> None:
        output = await self._run('scan')
        if output is not None:
            self._last_output = output

    async def scanned_results(self) -> Sequence[ObservedSignal]:
        output = self._last_output
        self._last_output = None
        if output is None:
            output = await self._run('scan', 'dump')
        if output is None:
            raise RuntimeError(f"Could not read scan results for {self._interface}")
        return parse_iw_scan(output)

    def _interface_present(self) -> bool:
        if shutil.which('iw') is None:
            logger.debug("iw not installed")
            return False
        return os.path.isdir(f'/sys/class/net/{self._interface}/wireless')

    async def _run(self, *args: str) -> Optional[str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                'iw', 'dev', self._interface, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            return None
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("iw %s timed out on %s", ' '.join(args), self._interface)
            return None
        finally:
            # also reached on cancellation by an outer deadline
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
        if proc.returncode != 0:
            logger.debug("iw %s failed on %s: %s", ' '.join(args), self._interface, stderr.decode(errors='replace').strip())
            return None
        return stdout.decode(errors='replace')
