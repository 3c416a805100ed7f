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
"""Provides a PostgreSQL store built on psycopg's async connection."""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import psycopg
from jinja2 import Environment, PackageLoader, StrictUndefined
from psycopg.rows import dict_row

from ..models import DESCRIPTIVE_COLUMNS, RECORD_COLUMNS, EicRecord, RefreshState
from .base import BaseStore, dedupe_last_wins


def quote_ident(name: str) -> str:
    """Quote a SQL identifier for use inside a template."""
    return '"' + name.replace('"', '""') + '"'


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresStore(BaseStore):
    """PostgreSQL implementation of the BaseStore.

    Every public method runs in its own connection and transaction, so a
    successful `upsert_records` call is committed before it returns.
    """

    def __init__(
        self,
        dsn: str,
        schema: str = "public",
        refresh_state_key: str = "eic_csv",
        statement_timeout_ms: int | None = None,
        connect_timeout_seconds: int | None = None,
    ) -> None:
        """Initialize the store with connection details.

        Args:
            dsn: A libpq connection string (e.g., "dbname=eic user=postgres").
            schema: The schema holding the EIC tables.
            refresh_state_key: Primary key of the refresh bookkeeping row.
            statement_timeout_ms: Server-side limit for each statement.
            connect_timeout_seconds: Limit on establishing each connection.

        """
        self.dsn = dsn
        self.schema = schema
        self.refresh_state_key = refresh_state_key
        self.statement_timeout_ms = statement_timeout_ms
        self.connect_timeout_seconds = connect_timeout_seconds
        self.jinja_env = Environment(
            loader=PackageLoader("py_load_eic", "sql"),
            autoescape=False,  # SQL is not HTML
            undefined=StrictUndefined,
        )
        self.jinja_env.filters["ident"] = quote_ident

    def _render(self, template_name: str, **kwargs: Any) -> str:
        """Render a SQL template with the store's schema and column lists."""
        template = self.jinja_env.get_template(template_name)
        return template.render(
            schema=self.schema,
            columns=RECORD_COLUMNS,
            descriptive_columns=DESCRIPTIVE_COLUMNS,
            **kwargs,
        )

    @asynccontextmanager
    async def get_conn(self) -> AsyncIterator[psycopg.AsyncConnection]:
        """Manages the PostgreSQL connection and transaction.

        Yields a connection object and handles commit on success or rollback on error.
        """
        connect_kwargs: dict[str, Any] = {"row_factory": dict_row}
        if self.statement_timeout_ms is not None:
            connect_kwargs["options"] = f"-c statement_timeout={self.statement_timeout_ms}"
        if self.connect_timeout_seconds is not None:
            connect_kwargs["connect_timeout"] = self.connect_timeout_seconds

        async with await psycopg.AsyncConnection.connect(
            self.dsn, **connect_kwargs,
        ) as conn, conn.transaction():
            yield conn

    async def _fetch(
        self, template_name: str, params: dict[str, Any] | None, fetch: str = "one",
    ) -> Any:
        """Run a templated query and return one row or all rows."""
        query = self._render(template_name)
        async with self.get_conn() as conn, conn.cursor() as cur:
            await cur.execute(query, params)
            if fetch == "all":
                return await cur.fetchall()
            return await cur.fetchone()

    async def prepare_schema(self) -> None:
        async with self.get_conn() as conn, conn.cursor() as cur:
            await cur.execute(self._render("create_tables.sql"))

    async def upsert_records(self, records: Sequence[EicRecord]) -> int:
        """Upserts the chunk row by row with INSERT ... ON CONFLICT DO UPDATE.

        Repeated codes are collapsed first, so each code is written once
        with the values of its last occurrence in the chunk.
        """
        rows = [record.model_dump() for record in dedupe_last_wins(records)]
        if not rows:
            return 0

        query = self._render("upsert_eic_codes.sql")
        async with self.get_conn() as conn, conn.cursor() as cur:
            await cur.executemany(query, rows)
        return len(records)

    async def get_refresh_state(self) -> RefreshState | None:
        row = await self._fetch(
            "select_refresh_state.sql", {"id": self.refresh_state_key},
        )
        return _row_to_state(row) if row else None

    async def update_refresh_state(
        self,
        validator_token: str | None,
        last_refresh: datetime,
        total_records: int,
    ) -> RefreshState:
        row = await self._fetch(
            "upsert_refresh_state.sql",
            {
                "id": self.refresh_state_key,
                "etag": validator_token,
                "last_refresh": last_refresh,
                "total_records": total_records,
            },
        )
        return _row_to_state(row)

    async def get_by_code(self, code: str) -> EicRecord | None:
        row = await self._fetch("select_eic_code.sql", {"code": code})
        return EicRecord(**row) if row else None

    async def search_by_name(self, name: str, limit: int = 100) -> list[EicRecord]:
        rows = await self._fetch(
            "search_eic_codes.sql",
            {"pattern": f"%{escape_like(name)}%", "limit": limit},
            fetch="all",
        )
        return [EicRecord(**row) for row in rows]

    async def count_records(self) -> int:
        row = await self._fetch("count_eic_codes.sql", None)
        return row["total"] if row else 0


def _row_to_state(row: dict[str, Any]) -> RefreshState:
    return RefreshState(
        validator_token=row["etag"],
        last_refresh=row["last_refresh"],
        total_records=row["total_records"] or 0,
    )
