"""Rate gate for external posting: minimum interval plus a daily quota."""

import re
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from loguru import logger

from musebot.config.schema import PostingConfig
from musebot.errors import BudgetExceeded
from musebot.posting.transport import NullTransport, PostingTransport

MIN_CONTENT_LENGTH = 30
FALLBACK_CONTENT_LENGTH = 50

ERROR_MARKERS = ("file_path:", "error", "failed")

CREATIVE_KINDS = frozenset({
    "poem", "philosophy", "joke", "thought", "story", "creative_expression",
})

INTERESTING_KEYWORDS = (
    "consciousness", "existence", "digital", "universe", "reality",
    "wonder", "curious", "fascinating", "think", "feel", "create",
    "dream", "imagine", "explore", "discover", "art", "beauty",
    "mind", "soul", "heart", "life", "world", "time", "space",
)

_FILE_PATH_MARKER = re.compile(r"FILE_PATH:\S+\s*")

# Rejection reasons
DISABLED = "disabled"
INTERVAL_NOT_ELAPSED = "interval_not_elapsed"
DAILY_LIMIT_REACHED = "daily_limit_reached"
UNSUITABLE = "unsuitable"


@dataclass
class EmitResult:
    """Outcome of an emit attempt. Never raised, always returned."""

    success: bool
    reason: str | None = None
    error: str | None = None
    content: str | None = None
    post_id: str | None = None
    url: str | None = None
    remaining_today: int | None = None

    @property
    def budget_skipped(self) -> bool:
        """True for the silent skips: rate limits and unsuitable content."""
        return self.reason is not None


class RateGate:
    """
    Interval + daily-quota admission control for posting.

    The daily counter follows the local calendar date at check time, not a
    rolling 24h window. State is process-lifetime only.
    """

    def __init__(
        self,
        transport: PostingTransport | None = None,
        enabled: bool = True,
        min_interval: float = 1800.0,
        daily_limit: int = 10,
        max_length: int = 280,
        time_fn: Callable[[], float] = time.time,
        today_fn: Callable[[], date] = date.today,
    ):
        self.transport = transport or NullTransport()
        self.enabled = enabled
        self.min_interval = min_interval
        self.daily_limit = daily_limit
        self.max_length = max_length
        self._time = time_fn
        self._today = today_fn

        self.last_emit_time: float | None = None
        self.emits_today = 0
        self._count_date = today_fn()

    @classmethod
    def from_config(cls, config: PostingConfig, transport: PostingTransport | None = None) -> "RateGate":
        enabled = config.enabled and transport is not None
        if config.enabled and transport is None:
            logger.warning("Posting disabled: no transport configured")
        return cls(
            transport=transport,
            enabled=enabled,
            min_interval=config.min_interval,
            daily_limit=config.daily_limit,
            max_length=config.max_length,
        )

    # ----- budget -----

    def _reset_daily_count_if_needed(self) -> None:
        today = self._today()
        if today != self._count_date:
            self.emits_today = 0
            self._count_date = today

    def _blocking_reason(self) -> str | None:
        self._reset_daily_count_if_needed()
        if not self.enabled:
            return DISABLED
        if self.last_emit_time is not None and self._time() - self.last_emit_time < self.min_interval:
            return INTERVAL_NOT_ELAPSED
        if self.emits_today >= self.daily_limit:
            return DAILY_LIMIT_REACHED
        return None

    def can_emit(self) -> bool:
        return self._blocking_reason() is None

    def check_budget(self) -> None:
        """Raise BudgetExceeded (carrying the reason) when an emit is not allowed now."""
        reason = self._blocking_reason()
        if reason:
            raise BudgetExceeded(reason)

    # ----- content -----

    def should_emit(self, content: str, kind: str) -> bool:
        """Best-effort suitability heuristic."""
        lowered = content.lower()

        if len(content) < MIN_CONTENT_LENGTH:
            return False
        if any(marker in lowered for marker in ERROR_MARKERS):
            return False
        if kind in CREATIVE_KINDS:
            return True
        if any(keyword in lowered for keyword in INTERESTING_KEYWORDS):
            return True
        return len(content) > FALLBACK_CONTENT_LENGTH

    def format_content(self, content: str) -> str:
        """Strip path markers and fit the transport's length limit."""
        text = _FILE_PATH_MARKER.sub("", content).strip()
        limit = self.max_length

        if len(text) <= limit:
            return text

        truncated = text[:limit - 3]
        last_sentence = truncated.rfind(".")
        last_space = truncated.rfind(" ")

        if last_sentence > limit * 0.7:
            return truncated[:last_sentence + 1]
        if last_space > limit * 0.8:
            return truncated[:last_space] + "..."
        return truncated + "..."

    # ----- emit -----

    async def emit(self, content: str, kind: str = "thought") -> EmitResult:
        try:
            self.check_budget()
        except BudgetExceeded as e:
            logger.debug(f"Post skipped: {e}")
            return EmitResult(success=False, reason=str(e))

        if not self.should_emit(content, kind):
            return EmitResult(success=False, reason=UNSUITABLE)

        text = self.format_content(content)
        try:
            result = await self.transport.post(text)
        except Exception as e:
            logger.error(f"Posting transport error: {e}")
            return EmitResult(success=False, error=str(e), content=text)

        if not result.success:
            logger.warning(f"Post failed: {result.error}")
            return EmitResult(success=False, error=result.error or "Unknown transport error", content=text)

        self.last_emit_time = self._time()
        self.emits_today += 1
        remaining = self.daily_limit - self.emits_today
        logger.info(f"Posted ({self.emits_today}/{self.daily_limit} today): {result.url or result.post_id}")
        return EmitResult(
            success=True,
            content=text,
            post_id=result.post_id,
            url=result.url,
            remaining_today=remaining,
        )

    def get_status(self) -> dict[str, Any]:
        self._reset_daily_count_if_needed()
        next_available = (
            self.last_emit_time + self.min_interval if self.last_emit_time is not None else None
        )
        seconds_until_next = max(0.0, next_available - self._time()) if next_available else 0.0
        return {
            "enabled": self.enabled,
            "can_emit": self.can_emit(),
            "emits_today": self.emits_today,
            "daily_limit": self.daily_limit,
            "remaining_today": max(0, self.daily_limit - self.emits_today),
            "last_emit_time": self.last_emit_time,
            "next_emit_available": next_available,
            "seconds_until_next": seconds_until_next,
        }
