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
"""Composition root: wires settings into a single refresh service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from .config import Settings
from .fetcher import EicFetcher
from .reconciler import BatchReconciler
from .refresh import EicRefreshService
from .scheduler import RefreshScheduler
from .store import BaseStore, create_store


@dataclass
class Application:
    """The objects shared by the scheduler, on-demand callers and queries."""

    settings: Settings
    store: BaseStore
    fetcher: EicFetcher
    service: EicRefreshService

    def create_scheduler(self) -> RefreshScheduler:
        return RefreshScheduler(
            self.service, interval_minutes=self.settings.refresh_interval_minutes,
        )


def build_application(
    settings: Settings, client: httpx.AsyncClient | None = None,
) -> Application:
    """Instantiate the store, fetcher and service exactly once."""
    store = create_store(settings)
    fetcher = EicFetcher(settings, client=client)
    service = EicRefreshService(
        store,
        fetcher,
        reconciler=BatchReconciler(store, batch_size=settings.batch_size),
        refresh_interval_minutes=settings.refresh_interval_minutes,
    )
    return Application(settings=settings, store=store, fetcher=fetcher, service=service)


@asynccontextmanager
async def open_application(
    settings: Settings, client: httpx.AsyncClient | None = None,
) -> AsyncIterator[Application]:
    """Build the application and close the HTTP client it created on exit."""
    app = build_application(settings, client=client)
    try:
        yield app
    finally:
        await app.fetcher.aclose()
