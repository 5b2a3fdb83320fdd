"""
Naming-convention flags derived from a campaign's display name.
"""
from typing import Optional, Protocol

from adpilot.config import get_settings


class CreativeRefreshPredicate(Protocol):
    """Decides whether a display name marks a refreshed ("Re") creative."""

    def __call__(self, display_name: str) -> bool:
        ...


class MarkerRefreshPredicate:
    """Refreshed when the display name contains a fixed marker substring."""

    def __init__(self, marker: Optional[str] = None):
        self.marker = marker if marker is not None else get_settings().creative_refresh_marker

    def __call__(self, display_name: str) -> bool:
        if not self.marker:
            return False
        return self.marker in (display_name or "")


def has_refresh_marker(display_name: str) -> bool:
    """Default predicate using the configured marker."""
    return MarkerRefreshPredicate()(display_name)
