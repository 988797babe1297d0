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

import threading
from urllib.parse import urlsplit

import pytest
import requests


class FakeClock:
    """Monotonic clock whose sleep only advances virtual time. Thread-safe."""

    def __init__(self, t0: float = 0.0):
        self.t = t0
        self.sleep_calls = 0
        self.last_slept = []
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self.t

    def sleep(self, dt: float) -> None:
        with self._lock:
            self.sleep_calls += 1
            self.last_slept.append(dt)
            self.t += dt

    def advance(self, dt: float) -> None:
        with self._lock:
            self.t += dt


class FakeResponse:
    def __init__(self, status_code: int, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if not isinstance(self._body, (dict, list)):
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._body


class FakeService:
    """
    Scripted stand-in for an Ironic-like API.

    - ``root``: items served for ``GET {base}``; an int is a status code, an
      Exception is raised. The last item repeats once the others are used.
    - ``drivers``: one item per listing call, same repeat rule. An item is a
      list of pages; a page is a list of driver records, an int status, an
      Exception, or anything else (served as a non-JSON body).
    - ``requests`` records every path hit, ``"/v1;/v1/drivers;"`` style.
    """

    def __init__(self, base: str, *, root=(200,), drivers=([[]],)):
        self.base = base.rstrip("/")
        self.root = list(root)
        self.drivers = list(drivers)
        self.calls: list[str] = []
        self.headers: list[dict] = []
        self._pages: list = []
        self._lock = threading.Lock()

    @property
    def requests(self) -> str:
        return "".join(f"{c};" for c in self.calls)

    @staticmethod
    def _next(seq):
        return seq.pop(0) if len(seq) > 1 else seq[0]

    def handles(self, url: str) -> bool:
        return url == self.base or url.startswith(self.base + "/")

    def get(self, url: str, headers=None):
        with self._lock:
            parts = urlsplit(url)
            self.calls.append(parts.path + (f"?{parts.query}" if parts.query else ""))
            self.headers.append(dict(headers or {}))
            if url == self.base:
                item = self._next(self.root)
                if isinstance(item, BaseException):
                    raise item
                return FakeResponse(int(item))
            if parts.path.endswith("/drivers"):
                if not parts.query:
                    self._pages = list(self._next(self.drivers))
                    index = 0
                else:
                    index = int(parts.query.split("=", 1)[1])
                return self._serve_page(index)
            return FakeResponse(404)

    def _serve_page(self, index: int):
        page = self._pages[index]
        if isinstance(page, BaseException):
            raise page
        if isinstance(page, int):
            return FakeResponse(page)
        if not isinstance(page, list):
            return FakeResponse(200, body=page)
        body = {"drivers": page}
        if index + 1 < len(self._pages):
            body["next"] = f"{self.base}/drivers?page={index + 1}"
        return FakeResponse(200, body=body)


class FakeNetwork:
    """Routes http_get calls to FakeServices; unknown hosts refuse connections."""

    def __init__(self):
        self.services: list[FakeService] = []
        self.timeouts: list[float] = []

    def add(self, base: str, **kwargs) -> FakeService:
        svc = FakeService(base, **kwargs)
        self.services.append(svc)
        return svc

    def get(self, url, *, timeout, headers=None):
        self.timeouts.append(timeout)
        for svc in self.services:
            if svc.handles(url):
                return svc.get(url, headers=headers)
        raise requests.ConnectionError(f"Connection refused: {url}")


def driver(name: str = "fake-hardware") -> dict:
    return {"name": name, "hosts": ["master-0"], "links": []}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def make_driver():
    return driver


@pytest.fixture(autouse=True)
def clean_ironic_env(monkeypatch):
    for var in (
        "IRONIC_ENDPOINT",
        "IRONIC_MICROVERSION",
        "IRONIC_INSPECTOR_ENDPOINT",
        "IRONIC_READINESS_TIMEOUT_S",
        "IRONIC_READINESS_POLL_INTERVAL_S",
        "IRONIC_READINESS_REQUEST_TIMEOUT_S",
        "IRONIC_READINESS_REQUIRE_DRIVERS",
        "IRONIC_READINESS_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def clear_settings_cache_between_tests():
    from ironic_readiness.config.settings import reload_settings_cache

    # before each test
    reload_settings_cache()
    yield
    # after each test (optional)
    reload_settings_cache()
