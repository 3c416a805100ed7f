"""Builders for records and CSV payloads used across the tests."""

from py_load_eic.models import EicRecord
from py_load_eic.parser import CSV_COLUMNS

SOURCE_URL = "https://example.test/csv/X_eicCodes.csv"
CSV_HEADER = ";".join(CSV_COLUMNS)


def make_record(code: str, **fields) -> EicRecord:
    """Build a record with a display name derived from the code by default."""
    fields.setdefault("eic_display_name", f"NAME-{code}")
    return EicRecord(eic_code=code, **fields)


def make_csv_row(code: str, display_name: str = "", **overrides: str) -> str:
    """Build one semicolon-separated data row in upstream column order."""
    values = {column: "" for column in CSV_COLUMNS}
    values["EicCode"] = code
    values["EicDisplayName"] = display_name
    values.update(overrides)
    return ";".join(values[column] for column in CSV_COLUMNS)


def make_csv(count: int) -> str:
    """Build a well-formed payload with `count` distinct records."""
    rows = [
        make_csv_row(f"10X{i:013d}", display_name=f"PARTY {i}", type="X")
        for i in range(count)
    ]
    return "\n".join([CSV_HEADER, *rows]) + "\n"
