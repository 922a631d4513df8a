"""
Tests for the sqlite report history.
"""

import pytest

from extractor import HealthParameter
from history import list_reports, save_report


HAEMOGLOBIN = HealthParameter(
    name="Haemoglobin", value="13.5", unit="g/dL", normal_range="12.0-15.0", status="normal"
)


def test_save_and_list(database):
    report_id = save_report(
        database, "user-1", "cbc.png", [HAEMOGLOBIN, {"name": "Glucose", "value": "95"}],
        file_size=2048, extracted_text="HAEMOGLOBIN 13.5",
    )

    reports = list_reports(database, "user-1")

    assert len(reports) == 1
    report = reports[0]
    assert report["id"] == report_id
    assert report["fileName"] == "cbc.png"
    assert report["fileSize"] == 2048
    assert report["parametersCount"] == 2
    assert report["createdAt"]
    assert report["healthParameters"] == [
        HAEMOGLOBIN.to_dict(),
        {"name": "Glucose", "value": "95"},
    ]


def test_newest_first(database):
    first = save_report(database, "user-1", "first.png", [])
    second = save_report(database, "user-1", "second.png", [])

    assert [r["id"] for r in list_reports(database, "user-1")] == [second, first]


def test_limit(database):
    for i in range(5):
        save_report(database, "user-1", f"report-{i}.png", [])

    reports = list_reports(database, "user-1", limit=3)

    assert [r["fileName"] for r in reports] == ["report-4.png", "report-3.png", "report-2.png"]


def test_scoped_by_user(database):
    save_report(database, "user-1", "mine.png", [HAEMOGLOBIN])
    save_report(database, "user-2", "theirs.png", [])

    assert [r["fileName"] for r in list_reports(database, "user-1")] == ["mine.png"]
    assert list_reports(database, "nobody") == []


@pytest.mark.parametrize("user_id,file_name", [("", "a.png"), ("user-1", "")])
def test_requires_user_and_file_name(database, user_id, file_name):
    with pytest.raises(ValueError):
        save_report(database, user_id, file_name, [])


def test_rejects_invalid_parameter(database):
    with pytest.raises(ValueError):
        save_report(database, "user-1", "a.png", [{"name": "Glucose", "value": "95", "status": "bad"}])

    assert list_reports(database, "user-1") == []
