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
"""The EIC refresh pipeline: detect change, parse, reconcile, record state."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from .errors import EicRefreshError, GuardBusyError
from .fetcher import EicFetcher
from .guard import SingleFlightGuard
from .models import RefreshOutcome, RefreshStatus
from .parser import parse_eic_csv
from .reconciler import BatchReconciler
from .store.base import BaseStore

logger = logging.getLogger(__name__)

UP_TO_DATE_MESSAGE = "Data is up to date (no changes detected)"
REFRESHED_MESSAGE = "Data refreshed successfully"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EicRefreshService:
    """Runs one synchronization of the EIC replica at a time.

    The service is created once by the application and shared by the
    scheduler, on-demand callers and the query layer.
    """

    def __init__(
        self,
        store: BaseStore,
        fetcher: EicFetcher,
        reconciler: BatchReconciler | None = None,
        guard: SingleFlightGuard | None = None,
        refresh_interval_minutes: int = 15,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initializes the service.

        Args:
            store: Replica and refresh state store.
            fetcher: Conditional downloader for the upstream CSV.
            reconciler: Chunked writer; defaults to 500-record chunks on `store`.
            guard: Single-flight guard owned by this service.
            refresh_interval_minutes: Cadence reported by `status()`.
            clock: Source of the refresh timestamp.
        """
        self.store = store
        self.fetcher = fetcher
        self.reconciler = reconciler or BatchReconciler(store)
        self.guard = guard or SingleFlightGuard()
        self.refresh_interval_minutes = refresh_interval_minutes
        self.clock = clock

    @property
    def is_refreshing(self) -> bool:
        """True while a refresh run holds the guard."""
        return self.guard.busy

    async def refresh(self) -> RefreshOutcome:
        """Run one synchronization and report the outcome.

        Never raises for pipeline failures: a concurrent run, a failed
        download, a malformed payload or a store error are all returned as
        an unsuccessful outcome. The refresh state is written only after
        every chunk has been applied.
        """
        try:
            with self.guard.hold():
                return await self._run()
        except GuardBusyError as e:
            logger.info("Refresh requested while another run is in flight")
            return RefreshOutcome(success=False, message=str(e))
        except EicRefreshError as e:
            logger.error("Refresh failed: %s", e)
            return RefreshOutcome(success=False, message=str(e))
        except Exception as e:
            logger.error("Refresh failed unexpectedly: %s", e, exc_info=True)
            return RefreshOutcome(
                success=False, message=str(e) or "Unknown error occurred",
            )

    async def _run(self) -> RefreshOutcome:
        logger.info("Starting refresh check...")
        state = await self.store.get_refresh_state()
        prior_token = state.validator_token if state else None

        result = await self.fetcher.check_and_fetch(prior_token)
        if not result.changed:
            return RefreshOutcome(success=True, message=UP_TO_DATE_MESSAGE)

        logger.info("Parsing CSV data...")
        records = parse_eic_csv(result.payload or "")

        logger.info("Upserting %d records to database...", len(records))
        written = await self.reconciler.reconcile(records)

        await self.store.update_refresh_state(
            validator_token=result.validator_token,
            last_refresh=self.clock(),
            total_records=written,
        )
        logger.info("Successfully refreshed %d EIC codes", written)
        return RefreshOutcome(
            success=True, message=REFRESHED_MESSAGE, records_processed=written,
        )

    async def status(self) -> RefreshStatus:
        """Summarize the replica for the query layer."""
        state = await self.store.get_refresh_state()
        total = await self.store.count_records()
        return RefreshStatus(
            total_eic_codes=total,
            last_refresh=state.last_refresh if state else None,
            validator_token_present=bool(state and state.validator_token),
            is_refreshing=self.is_refreshing,
            schedule=f"Every {self.refresh_interval_minutes} minutes",
        )
