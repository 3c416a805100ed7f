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
"""Defines the abstract base class for replica stores."""

import abc
from collections.abc import Sequence
from datetime import datetime

from ..models import EicRecord, RefreshState


def dedupe_last_wins(records: Sequence[EicRecord]) -> list[EicRecord]:
    """Collapse repeated codes to their last occurrence.

    The result keeps the position of each code's first appearance, so the
    outcome is the same as applying the records one by one in order.
    """
    latest: dict[str, EicRecord] = {}
    for record in records:
        latest[record.eic_code] = record
    return list(latest.values())


class BaseStore(abc.ABC):
    """Abstract Base Class for the EIC replica and its refresh bookkeeping.

    This class defines the interface that all store implementations must
    provide. The refresh pipeline writes through `upsert_records` and
    `update_refresh_state`; the remaining methods serve read-only queries.
    """

    @abc.abstractmethod
    async def prepare_schema(self) -> None:
        """Ensure the record and refresh state tables exist.

        This method must be idempotent.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def upsert_records(self, records: Sequence[EicRecord]) -> int:
        """Insert new records and overwrite existing ones by code.

        Every descriptive field of an existing row is replaced by the incoming
        value. If a code appears more than once in `records`, the last
        occurrence wins. The call is durable once it returns.

        Args:
            records: One chunk of records to apply.

        Returns:
            The number of records received.

        """
        raise NotImplementedError

    @abc.abstractmethod
    async def get_refresh_state(self) -> RefreshState | None:
        """Return the refresh bookkeeping, or None before the first refresh."""
        raise NotImplementedError

    @abc.abstractmethod
    async def update_refresh_state(
        self,
        validator_token: str | None,
        last_refresh: datetime,
        total_records: int,
    ) -> RefreshState:
        """Write all refresh bookkeeping fields as a single unit."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_by_code(self, code: str) -> EicRecord | None:
        """Look up a single record by its EIC code."""
        raise NotImplementedError

    @abc.abstractmethod
    async def search_by_name(self, name: str, limit: int = 100) -> list[EicRecord]:
        """Case-insensitive substring search over display and long names."""
        raise NotImplementedError

    @abc.abstractmethod
    async def count_records(self) -> int:
        """Return the number of records currently stored."""
        raise NotImplementedError
