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

from collections.abc import Iterator
from typing import Any

import requests

from ironic_readiness.exceptions import PaginationFailure
from ironic_readiness.platform.protocols import CapabilityRecord, Endpoint, HttpGet

DEFAULT_REQUEST_TIMEOUT_S = 5.0


class ServiceClient:
    """Thin HTTP client bound to one service's base URL."""

    def __init__(
        self,
        endpoint: Endpoint,
        *,
        request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        http_get: HttpGet = requests.get,
    ):
        self.endpoint = endpoint
        self.request_timeout_s = request_timeout_s
        self.http_get = http_get

    def get(self, url: str) -> Any:
        return self.http_get(url, timeout=self.request_timeout_s, headers=self.endpoint.headers)

    def probe(self) -> int:
        """GET the service root and return the status code.

        Raises ``requests.RequestException`` on network errors.
        """
        return self.get(self.endpoint.root_url).status_code

    def iter_driver_pages(self) -> Iterator[list[CapabilityRecord]]:
        """Yield the ``drivers`` list of every page of the driver listing.

        Follows the ``next`` link of each page. Any failure, on the first
        page or part-way through, is raised as PaginationFailure.
        """
        url: str | None = self.endpoint.join("drivers")
        seen: set[str] = set()
        while url:
            if url in seen:
                raise PaginationFailure(f"Pagination loop detected at {url}")
            seen.add(url)
            try:
                res = self.get(url)
            except requests.RequestException as e:
                raise PaginationFailure(f"GET {url} failed: {e}") from e
            if res.status_code != 200:
                raise PaginationFailure(f"GET {url} returned {res.status_code}")
            try:
                body = res.json()
            except ValueError as e:
                raise PaginationFailure(f"GET {url} returned a non-JSON body") from e

            drivers = body.get("drivers") if isinstance(body, dict) else None
            if not isinstance(drivers, list):
                raise PaginationFailure(f"GET {url} has no 'drivers' list")
            next_url = body.get("next")
            if next_url is not None and not isinstance(next_url, str):
                raise PaginationFailure(f"GET {url} has a malformed 'next' link: {next_url!r}")
            yield drivers
            url = next_url or None
