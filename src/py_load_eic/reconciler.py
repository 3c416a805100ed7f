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
"""Applies parsed records to the replica store in fixed-size chunks."""

import logging
import math
from collections.abc import Iterator, Sequence

from .errors import ReconciliationError
from .models import EicRecord
from .store.base import BaseStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


def chunked(records: Sequence[EicRecord], size: int) -> Iterator[Sequence[EicRecord]]:
    """Yield consecutive slices of at most `size` records."""
    for start in range(0, len(records), size):
        yield records[start:start + size]


class BatchReconciler:
    """Drives a finished record list through the store's bulk upsert."""

    def __init__(self, store: BaseStore, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        """Initializes the reconciler.

        Args:
            store: The replica store to write to.
            batch_size: Maximum number of records per upsert call.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be a positive integer")
        self.store = store
        self.batch_size = batch_size

    async def reconcile(self, records: Sequence[EicRecord]) -> int:
        """Upsert all records, one chunk after another.

        Chunks already applied stay applied if a later chunk fails; the
        upsert is idempotent so the next full run repairs the replica.

        Returns:
            The total number of records written.

        Raises:
            ReconciliationError: If the store rejects any chunk.
        """
        written = 0
        total_chunks = math.ceil(len(records) / self.batch_size)
        for index, chunk in enumerate(chunked(records, self.batch_size), start=1):
            try:
                await self.store.upsert_records(chunk)
            except Exception as e:
                logger.error(
                    "Upsert of chunk %d/%d failed after %d records: %s",
                    index,
                    total_chunks,
                    written,
                    e,
                )
                msg = f"Failed to upsert chunk {index}/{total_chunks}: {e}"
                raise ReconciliationError(msg, chunk_index=index) from e
            written += len(chunk)
            logger.debug("Upserted chunk %d/%d (%d records)", index, total_chunks, len(chunk))
        return written
