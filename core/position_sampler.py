import asyncio
import logging
from typing import Optional, Protocol

from core.models import HIGH_ACCURACY_THRESHOLD_M, PositionAvailability, PositionFix
from utils.configuration import ConfigurationManager


class PositionProvider(Protocol):
    """Platform positioning capability"""

    async def permission_granted(self) -> bool: ...
    async def service_enabled(self) -> bool: ...
    async def request_fix(self) -> PositionFix: ...


class PositionSampler:
    """Position sampler - acquires repeated fixes within a time budget and keeps the most accurate one"""

    def __init__(self, provider: PositionProvider, config_manager: ConfigurationManager):
        self.provider = provider
        self.config = config_manager.get_config().position_sampling
        self._logger = logging.getLogger(__name__)

    async def check_availability(self) -> PositionAvailability:
        """Probe permission first, then whether the positioning service is switched on"""
        try:
            if not await self.provider.permission_granted():
                return PositionAvailability.PERMISSION_DENIED
            if not await self.provider.service_enabled():
                return PositionAvailability.SERVICE_DISABLED
        except Exception as e:
            self._logger.warning("Positioning capability probe failed: %s", e)
            return PositionAvailability.SERVICE_DISABLED
        return PositionAvailability.AVAILABLE

    async def acquire(
        self,
        max_attempts: Optional[int] = None,
        time_budget_s: Optional[float] = None,
    ) -> Optional[PositionFix]:
        """
        Sample fixes until one reaches the high accuracy tier, attempts run out,
        or the time budget elapses.

        Args:
            max_attempts: Attempt limit (defaults to configuration)
            time_budget_s: Overall budget in seconds (defaults to configuration)

        Returns:
            The most accurate fix seen, or None when no attempt produced one
        """
        max_attempts = max_attempts if max_attempts is not None else self.config.max_attempts
        time_budget_s = time_budget_s if time_budget_s is not None else self.config.time_budget_s

        loop = asyncio.get_running_loop()
        deadline = loop.time() + time_budget_s
        best_fix: Optional[PositionFix] = None

        for attempt in range(max_attempts):
            remaining = deadline - loop.time()
            if remaining <= 0:
                self._logger.debug("Position time budget exhausted after %d attempts", attempt)
                break
            try:
                fix = await asyncio.wait_for(
                    self.provider.request_fix(),
                    timeout=min(self.config.attempt_timeout_s, remaining),
                )
            except asyncio.TimeoutError:
                self._logger.debug("Position attempt %d/%d timed out", attempt + 1, max_attempts)
                fix = None
            except Exception as e:
                self._logger.debug("Position attempt %d/%d failed: %s", attempt + 1, max_attempts, e)
                fix = None

            if fix is None:
                if attempt < max_attempts - 1 and self.config.retry_delay_s > 0:
                    await asyncio.sleep(min(self.config.retry_delay_s, max(deadline - loop.time(), 0)))
                continue

            if best_fix is None or fix.accuracy_meters < best_fix.accuracy_meters:
                best_fix = fix
            if fix.accuracy_meters <= HIGH_ACCURACY_THRESHOLD_M:
                self._logger.debug("High accuracy fix (%.1f m) on attempt %d", fix.accuracy_meters, attempt + 1)
                return fix

        if best_fix is None:
            self._logger.info("No position fix obtained")
        else:
            self._logger.debug("Best fix after sampling: %.1f m", best_fix.accuracy_meters)
        return best_fix
