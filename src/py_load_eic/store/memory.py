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
"""Provides an in-process store, mainly for local runs and tests."""

from collections.abc import Sequence
from datetime import datetime

from ..models import EicRecord, RefreshState
from .base import BaseStore, dedupe_last_wins


class MemoryStore(BaseStore):
    """A dictionary-backed implementation of BaseStore."""

    def __init__(self) -> None:
        self.records: dict[str, EicRecord] = {}
        self.refresh_state: RefreshState | None = None

    async def prepare_schema(self) -> None:
        return None

    async def upsert_records(self, records: Sequence[EicRecord]) -> int:
        for record in dedupe_last_wins(records):
            self.records[record.eic_code] = record
        return len(records)

    async def get_refresh_state(self) -> RefreshState | None:
        return self.refresh_state

    async def update_refresh_state(
        self,
        validator_token: str | None,
        last_refresh: datetime,
        total_records: int,
    ) -> RefreshState:
        self.refresh_state = RefreshState(
            validator_token=validator_token,
            last_refresh=last_refresh,
            total_records=total_records,
        )
        return self.refresh_state

    async def get_by_code(self, code: str) -> EicRecord | None:
        return self.records.get(code)

    async def search_by_name(self, name: str, limit: int = 100) -> list[EicRecord]:
        needle = name.casefold()
        matches = [
            record
            for record in self.records.values()
            if needle in (record.eic_display_name or "").casefold()
            or needle in (record.eic_long_name or "").casefold()
        ]
        return matches[:limit]

    async def count_records(self) -> int:
        return len(self.records)
