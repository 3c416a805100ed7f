# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Contains functions for parsing the EIC code list CSV.

The upstream file is semicolon separated with a single header row.
"""

import csv
import io
import logging

from .errors import ParseError
from .models import EicRecord

logger = logging.getLogger(__name__)

# Maps the upstream header names to EicRecord fields.
CSV_COLUMNS: dict[str, str] = {
    "EicCode": "eic_code",
    "EicDisplayName": "eic_display_name",
    "EicLongName": "eic_long_name",
    "EicParent": "eic_parent",
    "EicResponsibleParty": "eic_responsible_party",
    "EicStatus": "eic_status",
    "MarketParticipantPostalCode": "market_participant_postal_code",
    "MarketParticipantIsoCountryCode": "market_participant_iso_country_code",
    "MarketParticipantVatCode": "market_participant_vat_code",
    "EicTypeFunctionList": "eic_type_function_list",
    "type": "eic_type",
}

CSV_DELIMITER = ";"


def _clean(value: str | None) -> str | None:
    """Trim a raw value, mapping blanks to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def row_to_record(row: dict[str, str]) -> EicRecord:
    """
    Converts a single CSV row, keyed by header name, into an EicRecord.

    Args:
        row: A mapping of upstream column names to raw string values.

    Returns:
        The normalized record. A blank code is kept as an empty string.
    """
    values = {field: _clean(row.get(column)) for column, field in CSV_COLUMNS.items()}
    values["eic_code"] = values["eic_code"] or ""
    return EicRecord(**values)


def parse_eic_csv(payload: str) -> list[EicRecord]:
    """
    Parses the full EIC CSV payload into a list of records.

    The whole document is read before anything is returned, so a malformed
    row anywhere in the file means no records at all.

    Args:
        payload: The decoded CSV text as served by the upstream source.

    Returns:
        The records in source row order.

    Raises:
        ParseError: If the payload is empty, the header lacks one of the
            expected columns, a non-empty row's field count does not match
            the header, or the CSV itself cannot be decoded.
    """
    if payload.startswith("\ufeff"):
        payload = payload[1:]

    reader = csv.reader(io.StringIO(payload, newline=""), delimiter=CSV_DELIMITER)
    records: list[EicRecord] = []
    try:
        header = next(reader, None)
        if not header:
            raise ParseError("CSV payload is empty (no header row)")
        fieldnames = [name.strip() for name in header]
        missing = [column for column in CSV_COLUMNS if column not in fieldnames]
        if missing:
            raise ParseError(f"CSV header is missing column(s): {', '.join(missing)}")

        for row in reader:
            # csv yields an empty list only for a truly empty line
            if not row:
                continue
            if len(row) != len(fieldnames):
                raise ParseError(
                    f"Row on line {reader.line_num} has {len(row)} fields, "
                    f"expected {len(fieldnames)}"
                )
            records.append(row_to_record(dict(zip(fieldnames, row))))
    except csv.Error as e:
        raise ParseError(f"Malformed CSV near line {reader.line_num}: {e}") from e

    blank_codes = sum(1 for record in records if not record.eic_code)
    if blank_codes:
        logger.warning("Parsed %d record(s) with a blank EIC code.", blank_codes)
    return records
