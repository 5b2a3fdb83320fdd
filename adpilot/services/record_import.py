"""
Raw Daily Row Import

Turns a sheet/CSV export of per-campaign daily rows into Campaign objects.

Garbled numeric cells ("--", "", "#DIV/0!") are sanitised to 0 here, before
records reach the judgment core. Rows without a campaign key or a parseable
date are dropped. When two rows share a campaign and date, the later row wins.
"""
import re
from datetime import date as date_type, datetime
from typing import Dict, List, Optional

import pandas as pd

from adpilot.models.campaign import Campaign, DailyRecord
from adpilot.utils.logger import log

# Normalised header -> record field
_COLUMN_ALIASES = {
    "campaign key": "campaign_key",
    "campaign_key": "campaign_key",
    "cpn key": "campaign_key",
    "cpnkey": "campaign_key",
    "campaign name": "display_name",
    "campaign_name": "display_name",
    "cpn name": "display_name",
    "cpnname": "display_name",
    "media": "media_channel",
    "media channel": "media_channel",
    "account": "account_name",
    "account name": "account_name",
    "date": "date",
    "spend": "spend",
    "cost": "spend",
    "revenue": "revenue",
    "sales": "revenue",
    "profit": "profit",
    "roas": "roas",
    "mcv": "mcv",
    "cv": "cv",
    "conversions": "cv",
}

_REQUIRED_COLUMNS = ("campaign_key", "date")


def _normalize_header(header: str) -> str:
    """Normalise a header for matching: lowercase, strip, remove trailing dots, collapse spaces."""
    s = str(header).strip().lower()
    s = s.rstrip(".")
    s = re.sub(r"\s+", " ", s)
    return s


def _is_blank(value) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _parse_float(value) -> float:
    if _is_blank(value):
        return 0.0
    s = str(value).replace(",", "").replace("%", "").replace("¥", "").replace("$", "").replace(" ", "").strip()
    if not s or s == "--":
        return 0.0
    try:
        number = float(s)
    except (ValueError, TypeError):
        return 0.0
    if pd.isna(number) or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def _parse_optional_float(value) -> Optional[float]:
    if _is_blank(value) or str(value).strip() == "":
        return None
    return _parse_float(value)


def _parse_date(value) -> Optional[date_type]:
    """Parse a row date. Handles: 2025-01-15, 2025/01/15, 15/01/2025, Jan 15, 2025."""
    if _is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    s = str(value).strip()
    if not s:
        return None
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%b %d, %Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def _text(value) -> str:
    if _is_blank(value):
        return ""
    return str(value).strip()


def campaigns_from_frame(df: pd.DataFrame) -> List[Campaign]:
    """
    Group daily rows into campaigns, in first-seen order.

    Raises:
        ValueError: If the campaign key or date column cannot be found
    """
    renamed = {}
    for column in df.columns:
        field = _COLUMN_ALIASES.get(_normalize_header(column))
        if field and field not in renamed.values():
            renamed[column] = field
    df = df[list(renamed)].rename(columns=renamed)

    missing = [c for c in _REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Cannot find columns: {', '.join(missing)}")

    identities: Dict[str, Dict[str, Optional[str]]] = {}
    records: Dict[str, Dict[date_type, DailyRecord]] = {}
    skipped = 0

    for _, row in df.iterrows():
        key = _text(row.get("campaign_key"))
        row_date = _parse_date(row.get("date"))
        if not key or not row_date:
            skipped += 1
            continue

        record = DailyRecord(
            date=row_date,
            spend=_parse_float(row.get("spend")),
            revenue=_parse_float(row.get("revenue")),
            profit=_parse_optional_float(row.get("profit")) if "profit" in df.columns else None,
            roas=_parse_optional_float(row.get("roas")) if "roas" in df.columns else None,
            mcv=_parse_float(row.get("mcv")),
            cv=_parse_float(row.get("cv")),
        )
        identities[key] = {
            "display_name": _text(row.get("display_name")) or key,
            "media_channel": _text(row.get("media_channel")),
            "account_name": _text(row.get("account_name")) or None,
        }
        records.setdefault(key, {})[row_date] = record

    if skipped:
        log.warning(f"Dropped {skipped} rows without a campaign key or date")

    return [
        Campaign(
            key=key,
            display_name=identities[key]["display_name"],
            media_channel=identities[key]["media_channel"],
            records=tuple(records[key].values()),
            account_name=identities[key]["account_name"],
        )
        for key in records
    ]
