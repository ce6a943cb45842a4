"""Tests for source models."""

from datetime import timedelta

from conftest import NOW
from ecosort.models import (
    CachedSource,
    CitedSource,
    SourceMetadata,
    SourceType,
    SourceValidationResult,
    StabilityLogEntry,
    to_citations,
)


def test_citation_name_falls_back_to_hostname() -> None:
    source = SourceMetadata(type=SourceType.URL, value="https://www.stopwaste.org/guide")
    assert source.to_citation() == CitedSource(
        name="www.stopwaste.org", url="https://www.stopwaste.org/guide", type="url"
    )


def test_phone_and_facility_are_not_citations() -> None:
    sources = [
        SourceMetadata(type=SourceType.PHONE, value="5105550100"),
        SourceMetadata(type=SourceType.FACILITY, value="Davis Street"),
        SourceMetadata(type=SourceType.DIRECTORY, value="https://search.earth911.com/", name="Earth911"),
    ]
    assert to_citations(sources) == [
        CitedSource(name="Earth911", url="https://search.earth911.com/", type="directory")
    ]


def test_validity_requires_clean_200() -> None:
    assert SourceValidationResult(url="https://a.example/", http_status=200).is_valid
    assert not SourceValidationResult(url="https://a.example/", http_status=301).is_valid
    assert not SourceValidationResult(url="https://a.example/", http_status=200, is_soft_404=True).is_valid
    assert not SourceValidationResult(
        url="https://a.example/", http_status=200, is_parked_domain=True
    ).is_valid
    assert not SourceValidationResult(url="https://a.example/").is_valid


def test_needs_validation() -> None:
    entry = CachedSource(location="oakland, ca", item_pattern="pizza box")
    assert entry.needs_validation(NOW)

    entry.next_check_date = NOW + timedelta(days=1)
    assert not entry.needs_validation(NOW)

    entry.next_check_date = NOW
    assert entry.needs_validation(NOW)


def test_log_entry_from_result() -> None:
    result = SourceValidationResult(
        url="https://a.example/", http_status=200, is_soft_404=True, checked_at=NOW
    )
    entry = StabilityLogEntry.from_result(4, result)

    assert entry.source_id == 4
    assert entry.checked_at == NOW
    assert entry.soft_404_detected
    assert not entry.is_valid
    assert not entry.repair_attempted


def test_insert_params_leave_out_database_columns() -> None:
    entry = StabilityLogEntry(id=9, source_id=4, url="https://a.example/", checked_at=NOW)
    params = entry.insert_params()

    assert "id" not in params
    assert "created_at" not in params
    assert params["source_id"] == 4
