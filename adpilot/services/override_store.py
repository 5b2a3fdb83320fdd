"""
Manual Override Store

Holds same-day manual reclassifications keyed by campaign and merges them
into computed judgments.

Expiry is a calendar-day boundary, not a TTL: an override lives until
23:59:59.999 of the day it was created, in the reference timezone.
"""
import threading
from collections import deque
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from typing import Callable, Deque, Dict, Iterator, List, Optional, Protocol, Tuple, Union
from zoneinfo import ZoneInfo

from adpilot.config import get_settings
from adpilot.models.judgment import Classification, JudgmentResult
from adpilot.models.override import Override, OverrideChange
from adpilot.utils.logger import log

_END_OF_DAY = time(23, 59, 59, 999000)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReferenceDay:
    """A calendar date in a specific timezone."""
    day: date
    tz: ZoneInfo

    @classmethod
    def of(cls, instant: datetime, tz: ZoneInfo) -> "ReferenceDay":
        if instant.tzinfo is None:
            raise ValueError("Override timestamps must be timezone-aware")
        return cls(instant.astimezone(tz).date(), tz)

    @property
    def cutoff(self) -> datetime:
        """Last instant of the day, as a wall-clock time in the zone."""
        return datetime.combine(self.day, _END_OF_DAY, tzinfo=self.tz)

    def has_ended(self, now: datetime) -> bool:
        return now.astimezone(self.tz) > self.cutoff


class OverrideBackend(Protocol):
    """Key-value storage for overrides (in-memory for tests, persistent in production)."""

    def get(self, key: str) -> Optional[Override]:
        ...

    def set(self, key: str, value: Override) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def items(self) -> Iterator[Tuple[str, Override]]:
        ...


class InMemoryOverrideBackend:
    """Dict-backed storage."""

    def __init__(self):
        self._data: Dict[str, Override] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Override]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Override) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def items(self) -> Iterator[Tuple[str, Override]]:
        with self._lock:
            snapshot = list(self._data.items())
        return iter(snapshot)


ClassificationLike = Union[Classification, str]


class OverrideStore:
    """
    Reads and writes overrides, one writer per campaign key at a time.

    Expired overrides are treated as absent and removed when encountered.
    """

    def __init__(
        self,
        backend: Optional[OverrideBackend] = None,
        timezone_name: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
        history_limit: Optional[int] = None,
    ):
        settings = get_settings()
        self.backend = backend if backend is not None else InMemoryOverrideBackend()
        self.tz = ZoneInfo(timezone_name or settings.reference_timezone)
        self.clock = clock
        limit = history_limit if history_limit is not None else settings.override_history_limit
        self._history: Deque[OverrideChange] = deque(maxlen=limit)
        self._history_lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    # ==================== WRITES ====================

    def set(
        self,
        campaign_key: str,
        original_classification: ClassificationLike,
        new_classification: ClassificationLike,
        memo: Optional[str] = None,
    ) -> Optional[Override]:
        """
        Upsert the override for a campaign.

        Setting the classification the rules already produced clears the
        override instead of storing a no-op. Returns the stored override, or
        None when it was cleared.
        """
        original = Classification(original_classification)
        new = Classification(new_classification)
        now = self._now()

        with self._lock_for(campaign_key):
            if new == original:
                existing = self.backend.get(campaign_key)
                if existing is not None and self.is_expired(existing, now):
                    self._expire(campaign_key, existing, now)
                else:
                    self._remove(campaign_key, "cleared", now)
                return None

            override = Override(
                campaign_key=campaign_key,
                original_classification=original,
                new_classification=new,
                created_at=now,
                memo=memo,
            )
            self.backend.set(campaign_key, override)

        log.info(f"Override set for {campaign_key}: {original.value} -> {new.value}")
        self._record(OverrideChange(
            campaign_key=campaign_key,
            action="set",
            from_classification=original,
            to_classification=new,
            at=now,
            memo=memo,
        ))
        return override

    def clear(self, campaign_key: str) -> bool:
        """Remove a campaign's override. Returns True if one was active."""
        now = self._now()
        with self._lock_for(campaign_key):
            existing = self.backend.get(campaign_key)
            if existing is not None and self.is_expired(existing, now):
                self._expire(campaign_key, existing, now)
                return False
            return self._remove(campaign_key, "cleared", now)

    def purge_expired(self) -> int:
        """Delete every expired override; returns how many were removed."""
        now = self._now()
        purged = 0
        for key, override in self.backend.items():
            if self.is_expired(override, now):
                with self._lock_for(key):
                    current = self.backend.get(key)
                    if current is not None and self.is_expired(current, now):
                        self._expire(key, current, now)
                        purged += 1
        if purged:
            log.info(f"Purged {purged} expired overrides")
        return purged

    # ==================== READS ====================

    def get(self, campaign_key: str) -> Optional[Override]:
        """The campaign's override if still in force."""
        override = self.backend.get(campaign_key)
        if override is None:
            return None

        now = self._now()
        if not self.is_expired(override, now):
            return override

        with self._lock_for(campaign_key):
            current = self.backend.get(campaign_key)
            if current is not None and self.is_expired(current, now):
                self._expire(campaign_key, current, now)
                return None
            return current

    def active_overrides(self) -> Dict[str, Override]:
        """All overrides still in force, keyed by campaign."""
        self.purge_expired()
        return dict(self.backend.items())

    def effective_classification(self, campaign_key: str, computed: ClassificationLike) -> Classification:
        override = self.get(campaign_key)
        if override is not None:
            return override.new_classification
        return Classification(computed)

    def apply(self, result: JudgmentResult) -> JudgmentResult:
        """Attach the campaign's active override (if any) to a computed result."""
        override = self.get(result.campaign_key)
        if override is result.override:
            return result
        return replace(result, override=override)

    def history(self) -> List[OverrideChange]:
        """Change log, newest first."""
        with self._history_lock:
            return list(reversed(self._history))

    def is_expired(self, override: Override, now: Optional[datetime] = None) -> bool:
        now = now or self._now()
        return ReferenceDay.of(override.created_at, self.tz).has_ended(now)

    # ==================== INTERNALS ====================

    def _now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is None:
            raise ValueError("Override clock must return timezone-aware datetimes")
        return now

    def _lock_for(self, campaign_key: str) -> threading.Lock:
        with self._key_locks_guard:
            lock = self._key_locks.get(campaign_key)
            if lock is None:
                lock = self._key_locks[campaign_key] = threading.Lock()
            return lock

    def _remove(self, campaign_key: str, action: str, now: datetime) -> bool:
        existing = self.backend.get(campaign_key)
        if existing is None:
            return False
        self.backend.delete(campaign_key)
        log.info(f"Override {action} for {campaign_key}")
        self._record(OverrideChange(
            campaign_key=campaign_key,
            action=action,
            from_classification=existing.new_classification,
            to_classification=existing.original_classification,
            at=now,
        ))
        return True

    def _expire(self, campaign_key: str, override: Override, now: datetime) -> None:
        self.backend.delete(campaign_key)
        log.info(f"Override expired for {campaign_key} (created {override.created_at.isoformat()})")
        self._record(OverrideChange(
            campaign_key=campaign_key,
            action="expired",
            from_classification=override.new_classification,
            to_classification=override.original_classification,
            at=now,
            memo=override.memo,
        ))

    def _record(self, change: OverrideChange) -> None:
        with self._history_lock:
            self._history.append(change)
