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
"""A non-blocking, single-flight mutual exclusion guard."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .errors import GuardBusyError


class SingleFlightGuard:
    """Lets at most one holder through at a time; everyone else is turned away.

    Acquisition never waits. The guard is not reentrant: a holder that tries
    to acquire again is rejected like any other caller.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the guard for the duration of the block.

        Raises:
            GuardBusyError: If the guard is already held.
        """
        if not self.try_acquire():
            raise GuardBusyError()
        try:
            yield
        finally:
            self.release()
