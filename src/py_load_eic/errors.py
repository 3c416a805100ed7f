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
"""Exceptions raised by the refresh pipeline."""


class EicRefreshError(Exception):
    """Base class for all errors that abort a refresh run."""


class GuardBusyError(EicRefreshError):
    """Another refresh is already in flight in this process."""

    def __init__(self, message: str = "Refresh already in progress") -> None:
        super().__init__(message)


class RetrievalError(EicRefreshError):
    """The upstream source could not be fetched."""


class ParseError(EicRefreshError):
    """The upstream payload is not a well-formed EIC CSV document."""


class ReconciliationError(EicRefreshError):
    """A chunk could not be written to the replica store."""

    def __init__(self, message: str, chunk_index: int) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index
