# Copyright 2025 iGenius S.p.A
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

from concurrent.futures import Future
import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class ReadinessCache(Generic[T]):
    """
    Memoize one readiness computation per service key.

    - A stored value is written at most once and returned forever after.
    - Concurrent callers for the same key share the single in-flight
      computation instead of starting a second one.
    - ``keep(value)`` decides whether a finished value is stored; values it
      rejects are handed to the waiting callers but not remembered.
    """

    def __init__(self, keep: Callable[[T], bool] = lambda _: True):
        self._keep = keep
        self._lock = threading.Lock()
        self._values: dict[str, T] = {}
        self._inflight: dict[str, Future] = {}

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        with self._lock:
            if key in self._values:
                return self._values[key]
            fut = self._inflight.get(key)
            owner = fut is None
            if owner:
                fut = Future()
                self._inflight[key] = fut

        if not owner:
            return fut.result()

        try:
            value = compute()
        except BaseException as e:
            with self._lock:
                self._inflight.pop(key, None)
            fut.set_exception(e)
            raise

        with self._lock:
            self._inflight.pop(key, None)
            if self._keep(value):
                self._values[key] = value
        fut.set_result(value)
        return value
