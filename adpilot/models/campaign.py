"""Campaign identity and daily performance records."""
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional, Tuple

from adpilot.utils.helpers import calculate_roas


class InvalidRecordError(ValueError):
    """A daily record is not a mapping, or carries a missing date or a non-finite metric."""


_NUMERIC_FIELDS = ("spend", "revenue", "profit", "roas", "mcv", "cv")
_RECORD_FIELDS = ("date",) + _NUMERIC_FIELDS


@dataclass(frozen=True)
class DailyRecord:
    """
    One campaign, one calendar date.

    profit and roas are derived from spend/revenue when not supplied.
    """
    date: date
    spend: float
    revenue: float
    profit: Optional[float] = None
    roas: Optional[float] = None
    mcv: float = 0.0
    cv: float = 0.0

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "DailyRecord":
        """Build a record from a plain mapping, ignoring unknown keys."""
        if not isinstance(row, Mapping):
            raise InvalidRecordError(f"Record must be a mapping, got {row!r}")
        missing = [name for name in ("date", "spend", "revenue") if name not in row]
        if missing:
            raise InvalidRecordError(f"Record is missing {', '.join(missing)}")
        values = {name: row[name] for name in _RECORD_FIELDS if name in row}
        return cls(**values)

    def __post_init__(self) -> None:
        if isinstance(self.date, datetime):
            object.__setattr__(self, "date", self.date.date())
        if not isinstance(self.date, date):
            raise InvalidRecordError(f"Record date must be a date, got {self.date!r}")

        if self.profit is None:
            object.__setattr__(self, "profit", _finite("revenue", self.revenue) - _finite("spend", self.spend))
        if self.roas is None:
            object.__setattr__(self, "roas", calculate_roas(_finite("revenue", self.revenue), _finite("spend", self.spend)))

        for name in _NUMERIC_FIELDS:
            object.__setattr__(self, name, _finite(name, getattr(self, name)))


def _finite(name: str, value) -> float:
    if isinstance(value, bool):
        raise InvalidRecordError(f"{name} must be numeric, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidRecordError(f"{name} must be numeric, got {value!r}") from None
    if not math.isfinite(number):
        raise InvalidRecordError(f"{name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class Campaign:
    """
    Campaign identity plus its daily history (one record per date).

    Records may also be plain mappings; they are validated when judged.
    """
    key: str
    display_name: str
    media_channel: str = ""
    records: Tuple[DailyRecord, ...] = field(default_factory=tuple)
    account_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records))


@dataclass(frozen=True)
class Aggregate:
    """Sums over the most recent N days; roas comes from the summed values."""
    total_spend: float = 0.0
    total_revenue: float = 0.0
    total_profit: float = 0.0
    roas: float = 0.0
    days_counted: int = 0


@dataclass(frozen=True)
class Streak:
    """Consecutive most-recent loss / profit days."""
    loss_days: int = 0
    profit_days: int = 0
