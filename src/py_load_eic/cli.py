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
"""Command line entry points for refreshing and querying the EIC replica."""

import asyncio
import json
import logging
from typing import Any

import typer

from .bootstrap import open_application
from .config import get_settings
from .models import RefreshOutcome, RefreshState

# Basic structured logging setup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer(help="Keep a local replica of the ENTSO-E EIC code list in sync.")

CONFIG_OPTION = typer.Option("config.yaml", "--config", help="Path to YAML config file.")


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _metadata(state: RefreshState | None) -> dict[str, Any]:
    return {
        "lastRefresh": state.last_refresh.isoformat() if state and state.last_refresh else None,
        "totalRecords": state.total_records if state else None,
    }


@app.command("init-db")
def init_db(config_file: str = CONFIG_OPTION) -> None:
    """Create the EIC tables if they do not exist yet."""
    settings = get_settings(config_file)

    async def _init() -> None:
        async with open_application(settings) as application:
            await application.store.prepare_schema()

    asyncio.run(_init())
    typer.echo("Database schema is ready.")


@app.command()
def refresh(config_file: str = CONFIG_OPTION) -> None:
    """Run a single on-demand refresh and print its outcome."""
    settings = get_settings(config_file)

    async def _refresh() -> RefreshOutcome:
        async with open_application(settings) as application:
            await application.store.prepare_schema()
            return await application.service.refresh()

    outcome = asyncio.run(_refresh())
    _echo_json(outcome.to_payload())
    if not outcome.success:
        raise typer.Exit(code=1)


@app.command()
def serve(config_file: str = CONFIG_OPTION) -> None:
    """Refresh once now, then on a fixed interval until interrupted."""
    settings = get_settings(config_file)

    async def _serve() -> None:
        async with open_application(settings) as application:
            await application.store.prepare_schema()
            scheduler = application.create_scheduler()
            scheduler.start()
            try:
                await asyncio.Event().wait()
            finally:
                await scheduler.shutdown()

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logger.info("Received interrupt, scheduler stopped.")


@app.command()
def lookup(code: str, config_file: str = CONFIG_OPTION) -> None:
    """Print the record stored for an EIC code."""
    settings = get_settings(config_file)

    async def _lookup() -> tuple[Any, RefreshState | None]:
        async with open_application(settings) as application:
            record = await application.store.get_by_code(code)
            state = await application.store.get_refresh_state()
            return record, state

    record, state = asyncio.run(_lookup())
    if record is None:
        typer.echo(f"EIC code not found: {code}", err=True)
        raise typer.Exit(code=1)
    _echo_json({"data": record.model_dump(mode="json"), "metadata": _metadata(state)})


@app.command()
def search(name: str, config_file: str = CONFIG_OPTION) -> None:
    """Search display and long names for a substring."""
    settings = get_settings(config_file)
    if not name.strip():
        typer.echo("Search parameter 'name' is required", err=True)
        raise typer.Exit(code=2)

    async def _search() -> tuple[list, RefreshState | None]:
        async with open_application(settings) as application:
            results = await application.store.search_by_name(name, limit=settings.search_limit)
            state = await application.store.get_refresh_state()
            return results, state

    results, state = asyncio.run(_search())
    metadata = _metadata(state)
    metadata.update({"matchCount": len(results), "query": name})
    _echo_json({"data": [r.model_dump(mode="json") for r in results], "metadata": metadata})


@app.command()
def status(config_file: str = CONFIG_OPTION) -> None:
    """Print replica size, last refresh time and refresh schedule."""
    settings = get_settings(config_file)

    async def _status():
        async with open_application(settings) as application:
            return await application.service.status()

    _echo_json(asyncio.run(_status()).model_dump(mode="json"))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
