"""
Verification Orchestrator - fuses satellite fixes and wireless observations into one presence verdict
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional

from algorithms.decision_policy import AccessPointOutcome, decide
from core.floor_discriminator import FloorDiscriminator
from core.models import (
    AccessPointConfig,
    FloorClassification,
    ObservedSignal,
    PositionAvailability,
    PositionFix,
    ReasonCode,
    ScanReport,
    VerificationMethod,
    VerificationResult,
    VerificationTrace,
    Zone,
)
from core.position_sampler import PositionSampler
from core.signal_scanner import SignalScanner
from utils.configuration import ConfigurationManager
from utils.geometry import is_inside

_UNAVAILABLE_REASONS = {
    PositionAvailability.PERMISSION_DENIED: ReasonCode.PERMISSION_DENIED,
    PositionAvailability.SERVICE_DISABLED: ReasonCode.SERVICE_DISABLED,
}


@dataclass
class _Provisional:
    """Verdict already reached while evidence is still being collected"""
    result: Optional[VerificationResult] = None


@dataclass(frozen=True)
class _WifiCheck:
    """Access point evidence from one scan"""
    report: ScanReport
    signal: Optional[ObservedSignal]
    floor: Optional[FloorClassification]

    @property
    def outcome(self) -> AccessPointOutcome:
        if self.floor is not None:
            return AccessPointOutcome.CONFIRMED if self.floor.verified else AccessPointOutcome.MISMATCH
        if self.report.signals:
            return AccessPointOutcome.NOT_DETECTED
        return AccessPointOutcome.NO_SCAN_DATA

    @property
    def floor_reason(self) -> str:
        return self.floor.reason if self.floor is not None else ''


class VerificationOrchestrator:
    """
    Top-level presence verification

    Priority policy per call: wireless first when the zone has an access
    point, satellite fix as fallback, and the access point's floor check as a
    gate on satellite containment. Holds no per-call state, so concurrent calls
    do not interfere.
    """

    def __init__(
        self,
        sampler: PositionSampler,
        scanner: SignalScanner,
        config_manager: ConfigurationManager,
        discriminator: Optional[FloorDiscriminator] = None,
    ):
        self.sampler = sampler
        self.scanner = scanner
        self.discriminator = discriminator or FloorDiscriminator()
        self.config = config_manager.get_config()
        self._logger = logging.getLogger(__name__)

    async def verify_within(
        self,
        zone: Zone,
        access_point: Optional[AccessPointConfig] = None,
        timeout_s: Optional[float] = None,
    ) -> VerificationResult:
        """
        Run verify() under an overall wall-clock limit

        Expiry yields a TIMEOUT result, unless a wireless accept was already
        decided and only its evidence fix was outstanding; that accept is
        returned without a position.
        """
        timeout_s = timeout_s if timeout_s is not None else self.config.verification.overall_timeout_s
        provisional = _Provisional()
        try:
            return await asyncio.wait_for(self._verify(zone, access_point, provisional), timeout=timeout_s)
        except asyncio.TimeoutError:
            if provisional.result is not None:
                self._logger.info("Evidence fix for zone %s still pending at the deadline; returning the WiFi accept", zone.id)
                return self._finish(provisional.result)
            self._logger.warning("Verification for zone %s timed out after %.1f s", zone.id, timeout_s)
            return VerificationResult(
                verified=False,
                reason_code=ReasonCode.TIMEOUT,
                method=VerificationMethod.NONE,
                message=f"Verification did not finish within {timeout_s:g} seconds. Please try again.",
                trace=VerificationTrace().add('timeout', f"{timeout_s:g}s"),
            )

    async def verify(self, zone: Zone, access_point: Optional[AccessPointConfig] = None) -> VerificationResult:
        """
        Decide whether the device is inside the zone

        Args:
            zone: Zone to verify against
            access_point: Access point assigned to the zone, if any

        Returns:
            Exactly one VerificationResult
        """
        return await self._verify(zone, access_point, _Provisional())

    async def _verify(
        self,
        zone: Zone,
        access_point: Optional[AccessPointConfig],
        provisional: _Provisional,
    ) -> VerificationResult:
        self._logger.info("Verifying presence in zone %s (floor %d)", zone.id, zone.floor_number)
        trace = VerificationTrace().add('start', f"zone={zone.id} floor={zone.floor_number} ap={'yes' if access_point else 'no'}")

        # Step 1: wireless first
        if access_point is not None:
            check = await self._check_access_point(zone, access_point)
            trace = self._trace_wifi(trace, 'access_point_check', check)
            if check.floor is not None:
                if check.floor.verified:
                    accepted = VerificationResult(
                        verified=True,
                        reason_code=ReasonCode.VERIFIED,
                        method=VerificationMethod.WIFI,
                        message="Verified via WiFi floor detection (GPS evidence not available in time)",
                        signal_evidence=check.signal,
                        floor_reason_text=check.floor.reason,
                        trace=trace.add('opportunistic_fix', 'no fix before deadline').add('decided', 'wifi accept'),
                    )
                    provisional.result = accepted
                    fix = await self._opportunistic_fix()
                    trace = trace.add('opportunistic_fix', self._describe_fix(fix))
                    return self._finish(replace(
                        accepted,
                        message="Verified via WiFi floor detection" + (" + GPS" if fix else " (offline mode)"),
                        position=fix,
                        trace=trace.add('decided', 'wifi accept'),
                    ))
                return self._finish(VerificationResult(
                    verified=False,
                    reason_code=ReasonCode.FLOOR_MISMATCH,
                    method=VerificationMethod.WIFI,
                    message=f"Floor mismatch: {check.floor.reason}",
                    signal_evidence=check.signal,
                    floor_reason_text=check.floor.reason,
                    trace=trace.add('decided', 'wifi veto'),
                ))

        # Step 2: satellite fix
        availability = await self.sampler.check_availability()
        fix = None
        if availability is PositionAvailability.AVAILABLE:
            fix = await self.sampler.acquire()
        trace = trace.add('position', f"{availability.value}; {self._describe_fix(fix)}")

        if fix is None:
            return self._finish(await self._without_fix(zone, access_point, availability, trace))

        tier = fix.accuracy_tier
        inside = is_inside(fix.coordinate, zone.corners)
        trace = trace.add('containment', f"inside={inside} tier={tier.value}")

        check = None
        outcome = AccessPointOutcome.NOT_CONFIGURED
        if access_point is not None:
            check = await self._check_access_point(zone, access_point)
            step = 'floor_gate' if inside else 'wifi_fallback'
            trace = self._trace_wifi(trace, step, check)
            outcome = check.outcome

        decision = decide(
            tier,
            inside,
            outcome,
            zone_floor=zone.floor_number,
            ap_name=(access_point.ssid or access_point.bssid) if access_point else '',
            floor_reason=check.floor_reason if check else None,
        )
        return self._finish(VerificationResult(
            verified=decision.verified,
            reason_code=decision.reason_code,
            method=decision.method,
            message=decision.message,
            position=fix,
            signal_evidence=check.signal if check else None,
            floor_reason_text=check.floor_reason if check else '',
            low_confidence=decision.low_confidence,
            trace=trace.add('decided', f"{decision.reason_code.value} via {decision.method.value}"),
        ))

    async def _without_fix(
        self,
        zone: Zone,
        access_point: Optional[AccessPointConfig],
        availability: PositionAvailability,
        trace: VerificationTrace,
    ) -> VerificationResult:
        """Wireless-only last resort when no fix could be obtained"""
        if access_point is None:
            reason = _UNAVAILABLE_REASONS.get(availability, ReasonCode.UNAVAILABLE)
            return VerificationResult(
                verified=False,
                reason_code=reason,
                method=VerificationMethod.NONE,
                message=self._unavailable_message(availability),
                trace=trace.add('decided', reason.value),
            )

        check = await self._check_access_point(zone, access_point)
        trace = self._trace_wifi(trace, 'wifi_only', check)
        if check.floor is not None:
            if check.floor.verified:
                return VerificationResult(
                    verified=True,
                    reason_code=ReasonCode.VERIFIED,
                    method=VerificationMethod.WIFI,
                    message="Verified via WiFi floor detection (GPS unavailable)",
                    signal_evidence=check.signal,
                    floor_reason_text=check.floor.reason,
                    trace=trace.add('decided', 'wifi-only accept'),
                )
            return VerificationResult(
                verified=False,
                reason_code=ReasonCode.FLOOR_MISMATCH,
                method=VerificationMethod.WIFI,
                message=f"WiFi detected but floor mismatch: {check.floor.reason}",
                signal_evidence=check.signal,
                floor_reason_text=check.floor.reason,
                trace=trace.add('decided', 'wifi-only veto'),
            )

        reason = ReasonCode.ACCESS_POINT_NOT_DETECTED if check.report.supported else ReasonCode.SCAN_UNSUPPORTED
        return VerificationResult(
            verified=False,
            reason_code=reason,
            method=VerificationMethod.NONE,
            message=f"Please go to Floor {zone.floor_number} where the router \"{access_point.ssid or access_point.bssid}\" is located.",
            trace=trace.add('decided', reason.value),
        )

    async def _check_access_point(self, zone: Zone, access_point: AccessPointConfig) -> _WifiCheck:
        report = await self.scanner.scan_report()
        signal = self.discriminator.match_access_point(report.signals, access_point)
        if signal is None:
            return _WifiCheck(report, None, None)
        floor = self.discriminator.classify_floor(signal.strength_dbm, access_point, zone.floor_number)
        self._logger.info("Access point %r at %d dBm: %s", access_point.ssid, signal.strength_dbm, floor.reason)
        return _WifiCheck(report, signal, floor)

    async def _opportunistic_fix(self) -> Optional[PositionFix]:
        """Evidence-only fix after a wireless accept; never changes the verdict"""
        if await self.sampler.check_availability() is not PositionAvailability.AVAILABLE:
            return None
        sampling = self.config.position_sampling
        return await self.sampler.acquire(
            max_attempts=sampling.opportunistic_max_attempts,
            time_budget_s=sampling.opportunistic_time_budget_s,
        )

    def _finish(self, result: VerificationResult) -> VerificationResult:
        self._logger.info(
            "Verification %s: %s via %s",
            'accepted' if result.verified else 'rejected',
            result.reason_code.value,
            result.method.value,
        )
        return result

    @staticmethod
    def _trace_wifi(trace: VerificationTrace, step: str, check: _WifiCheck) -> VerificationTrace:
        if not check.report.supported:
            return trace.add(step, 'scan unsupported')
        if check.signal is None:
            return trace.add(step, f"not detected among {len(check.report.signals)} signals")
        return trace.add(step, f"{check.signal.bssid} {check.signal.strength_dbm} dBm: {check.floor_reason}")

    @staticmethod
    def _describe_fix(fix: Optional[PositionFix]) -> str:
        if fix is None:
            return 'no fix'
        return f"{fix.coordinate.latitude:.6f},{fix.coordinate.longitude:.6f} ±{fix.accuracy_meters:.1f}m"

    @staticmethod
    def _unavailable_message(availability: PositionAvailability) -> str:
        if availability is PositionAvailability.PERMISSION_DENIED:
            return "Location permission denied and no WiFi router configured for this room."
        if availability is PositionAvailability.SERVICE_DISABLED:
            return "Location services are disabled and no WiFi router configured for this room."
        return "Location verification failed. GPS unavailable and no WiFi router configured."

