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
"""Provides a class to conditionally download the EIC code list."""

import logging

import httpx

from .config import Settings
from .errors import RetrievalError
from .models import FetchResult

logger = logging.getLogger(__name__)


def build_client(settings: Settings) -> httpx.AsyncClient:
    """Create the HTTP client used to reach the upstream source."""
    return httpx.AsyncClient(
        headers={"User-Agent": settings.user_agent},
        follow_redirects=True,
        timeout=httpx.Timeout(settings.http_timeout_seconds),
    )


class EicFetcher:
    """Fetches the EIC CSV only when it changed since the last known ETag."""

    def __init__(
        self, settings: Settings, client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the fetcher with settings and an optional HTTP client."""
        self.settings = settings
        self._owns_client = client is None
        self.client = client or build_client(settings)

    async def check_and_fetch(self, prior_token: str | None) -> FetchResult:
        """Issue a conditional GET against the source URL.

        If `prior_token` is set it is sent as `If-None-Match`. A 304 response
        yields an unchanged result without reading the body; any 2xx response
        yields the new ETag (if the source supplied one) and the full payload.

        Raises:
            RetrievalError: On network failure or any other status code.
        """
        headers = {}
        if prior_token:
            headers["If-None-Match"] = prior_token

        url = self.settings.source_url
        try:
            async with self.client.stream("GET", url, headers=headers) as response:
                if response.status_code == httpx.codes.NOT_MODIFIED:
                    logger.info("No changes detected (304 Not Modified)")
                    return FetchResult(changed=False, validator_token=prior_token)

                if not response.is_success:
                    msg = (
                        f"Failed to fetch CSV: {response.status_code} "
                        f"{response.reason_phrase}"
                    )
                    raise RetrievalError(msg)

                await response.aread()
                return FetchResult(
                    changed=True,
                    validator_token=response.headers.get("etag"),
                    payload=response.text,
                )
        except httpx.HTTPError as e:
            logger.error("Request to %s failed: %s", url, e)
            raise RetrievalError(f"Failed to fetch CSV: {e!r}") from e

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self.client.aclose()
