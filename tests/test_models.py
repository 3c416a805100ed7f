from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from py_load_eic.models import (
    DESCRIPTIVE_COLUMNS,
    RECORD_COLUMNS,
    EicRecord,
    RefreshOutcome,
    RefreshState,
    RefreshStatus,
)

pytestmark = pytest.mark.unit


def test_record_columns_order():
    """Tests that the code comes first and all ten descriptive fields follow."""
    assert RECORD_COLUMNS[0] == "eic_code"
    assert len(DESCRIPTIVE_COLUMNS) == 10
    assert "eic_type" in DESCRIPTIVE_COLUMNS


def test_eic_record_defaults_and_frozen():
    record = EicRecord(eic_code="10XA")
    assert all(getattr(record, column) is None for column in DESCRIPTIVE_COLUMNS)
    with pytest.raises(ValidationError):
        record.eic_display_name = "changed"


def test_eic_record_requires_code():
    with pytest.raises(ValidationError):
        EicRecord(eic_display_name="No code")


def test_refresh_state_defaults():
    state = RefreshState()
    assert state.validator_token is None
    assert state.last_refresh is None
    assert state.total_records == 0


def test_refresh_outcome_payload_uses_camel_case():
    outcome = RefreshOutcome(
        success=True, message="Data refreshed successfully", records_processed=1200
    )
    assert outcome.to_payload() == {
        "success": True,
        "message": "Data refreshed successfully",
        "recordsProcessed": 1200,
    }


def test_refresh_outcome_payload_omits_missing_count():
    outcome = RefreshOutcome(success=False, message="Refresh already in progress")
    assert outcome.to_payload() == {
        "success": False,
        "message": "Refresh already in progress",
    }


def test_refresh_status_serializes():
    now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    status = RefreshStatus(
        total_eic_codes=5, last_refresh=now, schedule="Every 15 minutes"
    )
    dumped = status.model_dump(mode="json")
    assert dumped["last_refresh"] == "2025-01-02T03:04:05Z"
    assert dumped["is_refreshing"] is False
