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

import logging

import requests

from ironic_readiness.exceptions import PaginationFailure
from ironic_readiness.platform.polling import FixedIntervalPoller
from ironic_readiness.platform.protocols import CapabilityLister, ReadinessResult

logger = logging.getLogger(__name__)


def count_records(list_pages: CapabilityLister) -> int:
    """Count the records of one listing call across all of its pages.

    A failure anywhere in the walk counts as zero: a partial total is never
    returned.
    """
    total = 0
    try:
        for page in list_pages():
            total += len(page)
    except (PaginationFailure, requests.RequestException, ValueError) as e:
        logger.debug(f"Capability listing failed, discarding {total} records: {e}")
        return 0
    return total


class CapabilityVerifier(FixedIntervalPoller):
    """
    Poll a capability listing (Ironic drivers) until it is non-empty.

    Only meant to run after the service was found reachable.
    """

    timeout_log_level = logging.WARNING

    def __init__(self, list_pages: CapabilityLister, *, service: str = "Ironic", **kwargs):
        super().__init__(**kwargs)
        self.list_pages = list_pages
        self.service = service
        self.last_count = 0

    @property
    def description(self) -> str:
        return f"{self.service} drivers to be registered"

    def _attempt(self) -> bool:
        self.last_count = count_records(self.list_pages)
        if self.last_count > 0:
            return True
        self._progress(f"No {self.service} drivers loaded yet, waiting …")
        return False

    def _ready_result(self) -> ReadinessResult:
        return ReadinessResult.ready(attempts=self.attempts, records=self.last_count)

    def _timeout_result(
        self, reason: str, error: BaseException | None = None
    ) -> ReadinessResult:
        return ReadinessResult.timed_out(
            reason, attempts=self.attempts, records=self.last_count, error=error
        )
