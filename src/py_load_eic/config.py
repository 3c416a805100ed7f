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
"""Manages the application's configuration using Pydantic."""

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

EIC_CSV_URL = "https://eepublicdownloads.blob.core.windows.net/cio-lio/csv/X_eicCodes.csv"


class Settings(BaseSettings):
    """Manages configuration for the application.

    Reads settings from environment variables with the prefix 'EIC_'.
    """

    model_config = SettingsConfigDict(env_prefix="EIC_")

    # Database connection settings
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    # S105: Hardcoded password is used for local development.
    # In production, this should be set via environment variables.
    db_password: str = "postgres"
    db_name: str = "eic"
    db_schema: str = "public"
    db_statement_timeout_ms: int = 60_000
    db_connect_timeout_seconds: int = 10

    # Upstream source
    source_url: str = EIC_CSV_URL
    http_timeout_seconds: float = 60.0
    user_agent: str = "py-load-eic/0.1.0"

    # Synchronization
    batch_size: int = 500
    refresh_interval_minutes: int = 15
    refresh_state_key: str = "eic_csv"
    search_limit: int = 100
    store_backend: Literal["postgres", "memory"] = "postgres"

    @computed_field
    @property
    def db_connection_string(self) -> str:
        """Construct the libpq connection string from individual settings."""
        return (
            f"host='{self.db_host}' port='{self.db_port}' "
            f"user='{self.db_user}' password='{self.db_password}' "
            f"dbname='{self.db_name}'"
        )


def load_config(config_file: str | Path | None) -> dict[str, Any]:
    """Load configuration overrides from a YAML file.

    A missing file is not an error; the defaults and environment apply.
    """
    if not config_file:
        return {}
    try:
        with open(config_file, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file not found: %s", config_file)
        return {}


def get_settings(config_file: str | Path | None = None) -> Settings:
    """Build settings from an optional YAML file layered over the environment."""
    return Settings(**load_config(config_file))
