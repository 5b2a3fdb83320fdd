"""
Raw daily row import tests.
"""
from datetime import date

import pandas as pd
import pytest

from adpilot.services.record_import import campaigns_from_frame


def test_rows_grouped_into_campaigns():
    df = pd.DataFrame([
        {"CPN Key": "k1", "CPN Name": "Spring_Re", "Media": "meta", "Date": "2026-10-18", "Spend": "1,000", "Revenue": "1500"},
        {"CPN Key": "k1", "CPN Name": "Spring_Re", "Media": "meta", "Date": "2026-10-19", "Spend": "2000", "Revenue": "1000"},
        {"CPN Key": "k2", "CPN Name": "Autumn", "Media": "tiktok", "Date": "2026/10/19", "Spend": "500", "Revenue": "800"},
    ])
    campaigns = campaigns_from_frame(df)

    assert [c.key for c in campaigns] == ["k1", "k2"]
    k1 = campaigns[0]
    assert k1.display_name == "Spring_Re"
    assert k1.media_channel == "meta"
    assert len(k1.records) == 2
    latest = max(k1.records, key=lambda r: r.date)
    assert latest.date == date(2026, 10, 19)
    assert latest.profit == -1000
    assert latest.roas == 50


def test_garbled_numbers_become_zero():
    df = pd.DataFrame([
        {"campaign key": "k1", "date": "2026-10-19", "spend": "--", "revenue": "#DIV/0!", "cv": None},
    ])
    record = campaigns_from_frame(df)[0].records[0]
    assert record.spend == 0
    assert record.revenue == 0
    assert record.cv == 0
    assert record.roas == 0


def test_later_row_wins_for_same_date():
    df = pd.DataFrame([
        {"campaign key": "k1", "date": "2026-10-19", "spend": "100", "revenue": "100"},
        {"campaign key": "k1", "date": "2026-10-19", "spend": "100", "revenue": "300"},
    ])
    records = campaigns_from_frame(df)[0].records
    assert len(records) == 1
    assert records[0].revenue == 300


def test_rows_without_key_or_date_dropped():
    df = pd.DataFrame([
        {"campaign key": "", "date": "2026-10-19", "spend": "1", "revenue": "1"},
        {"campaign key": "k1", "date": "not a date", "spend": "1", "revenue": "1"},
        {"campaign key": "k2", "date": "2026-10-19", "spend": "1", "revenue": "1"},
    ])
    assert [c.key for c in campaigns_from_frame(df)] == ["k2"]


def test_missing_key_column_raises():
    df = pd.DataFrame([{"date": "2026-10-19", "spend": 1}])
    with pytest.raises(ValueError, match="campaign_key"):
        campaigns_from_frame(df)
