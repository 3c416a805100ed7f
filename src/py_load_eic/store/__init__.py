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
"""Replica store implementations."""

from ..config import Settings
from .base import BaseStore, dedupe_last_wins
from .memory import MemoryStore
from .postgres import PostgresStore

__all__ = ["BaseStore", "MemoryStore", "PostgresStore", "create_store", "dedupe_last_wins"]


def create_store(settings: Settings) -> BaseStore:
    """Instantiate the store selected by `settings.store_backend`."""
    if settings.store_backend == "memory":
        return MemoryStore()
    return PostgresStore(
        settings.db_connection_string,
        schema=settings.db_schema,
        refresh_state_key=settings.refresh_state_key,
        statement_timeout_ms=settings.db_statement_timeout_ms,
        connect_timeout_seconds=settings.db_connect_timeout_seconds,
    )
