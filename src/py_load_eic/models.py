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
"""Defines the Pydantic data models for the application."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EicRecord(BaseModel):
    """Represents a single row of the EIC code list.

    Descriptive fields are ``None`` when the source value is blank; they are
    never stored as empty strings.
    """

    model_config = ConfigDict(frozen=True)

    eic_code: str = Field(..., description="Energy Identification Code, the primary key.")
    eic_display_name: str | None = None
    eic_long_name: str | None = None
    eic_parent: str | None = None
    eic_responsible_party: str | None = None
    eic_status: str | None = None
    market_participant_postal_code: str | None = None
    market_participant_iso_country_code: str | None = None
    market_participant_vat_code: str | None = None
    eic_type_function_list: str | None = None
    # Renamed from "type" to avoid shadowing a Python builtin
    eic_type: str | None = None


# Column order used by the stores and SQL templates.
RECORD_COLUMNS: tuple[str, ...] = tuple(EicRecord.model_fields)
DESCRIPTIVE_COLUMNS: tuple[str, ...] = RECORD_COLUMNS[1:]


class RefreshState(BaseModel):
    """Bookkeeping for the last successful synchronization.

    There is exactly one instance for the whole dataset.
    """

    validator_token: str | None = Field(
        default=None, description="ETag returned by the source on the last fetch."
    )
    last_refresh: datetime | None = Field(
        default=None, description="Timestamp (UTC) of the last successful refresh."
    )
    total_records: int = Field(
        default=0, description="Number of records applied by the last refresh."
    )


class FetchResult(BaseModel):
    """Result of a conditional retrieval against the upstream source."""

    changed: bool
    validator_token: str | None = None
    payload: str | None = None


class RefreshOutcome(BaseModel):
    """Structured result of one synchronization attempt."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    records_processed: int | None = Field(default=None, alias="recordsProcessed")

    def to_payload(self) -> dict:
        """Serialize for callers, omitting the record count when absent."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RefreshStatus(BaseModel):
    """Read-only snapshot of the replica and the refresh service."""

    total_eic_codes: int
    last_refresh: datetime | None = None
    validator_token_present: bool = False
    is_refreshing: bool = False
    schedule: str
