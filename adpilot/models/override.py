"""Manual reclassification records."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from adpilot.models.judgment import Classification


@dataclass(frozen=True)
class Override:
    """A same-day manual reclassification for one campaign."""
    campaign_key: str
    original_classification: "Classification"
    new_classification: "Classification"
    created_at: datetime
    memo: Optional[str] = None


@dataclass(frozen=True)
class OverrideChange:
    """Audit entry for an override being set, cleared or expiring."""
    campaign_key: str
    action: str  # set, cleared, expired
    from_classification: Optional["Classification"]
    to_classification: Optional["Classification"]
    at: datetime
    memo: Optional[str] = None
