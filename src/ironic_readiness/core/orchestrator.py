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

from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable

import requests

from ironic_readiness.core.cache import ReadinessCache
from ironic_readiness.platform.capabilities import CapabilityVerifier, count_records
from ironic_readiness.platform.clients import DEFAULT_REQUEST_TIMEOUT_S, ServiceClient
from ironic_readiness.platform.deadline import Deadline
from ironic_readiness.platform.http_probe import AvailabilityProber
from ironic_readiness.platform.polling import DEFAULT_POLL_INTERVAL_S, ProgressCallback
from ironic_readiness.platform.protocols import Endpoint, HttpGet, ReadinessResult

DEFAULT_TIMEOUT_S = 600

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceReport:
    """Outcome of one service wait.

    ``capabilities`` is only set for the service whose drivers are checked,
    and only once it was found reachable.
    """

    endpoint: Endpoint
    reachability: ReadinessResult
    capabilities: ReadinessResult | None = None
    require_capabilities: bool = False

    @property
    def name(self) -> str:
        return self.endpoint.name

    @property
    def is_ready(self) -> bool:
        if not self.reachability.is_ready:
            return False
        if self.require_capabilities:
            return self.capabilities is not None and self.capabilities.is_ready
        return True

    @property
    def problem(self) -> str | None:
        if not self.reachability.is_ready:
            return f"{self.name} did not become ready: {self.reachability.reason}"
        if self.require_capabilities and not (self.capabilities and self.capabilities.is_ready):
            reason = self.capabilities.reason if self.capabilities else "not checked"
            return f"{self.name} has no drivers loaded: {reason}"
        return None

    @property
    def warning(self) -> str | None:
        if self.require_capabilities or self.capabilities is None:
            return None
        if self.capabilities.is_ready:
            return None
        return f"{self.name} is reachable but no drivers are loaded yet"


@dataclass(frozen=True)
class ReadinessReport:
    ironic: ServiceReport
    inspector: ServiceReport

    @property
    def services(self) -> tuple[ServiceReport, ServiceReport]:
        return (self.ironic, self.inspector)

    @property
    def ready(self) -> bool:
        return all(s.is_ready for s in self.services)

    @property
    def failed_services(self) -> list[str]:
        return [s.name for s in self.services if not s.is_ready]

    @property
    def warnings(self) -> list[str]:
        return [s.warning for s in self.services if s.warning]

    @property
    def message(self) -> str:
        if self.ready:
            return "Done!"
        return "; ".join(s.problem for s in self.services if s.problem)


class ReadinessOrchestrator:
    """
    Wait for Ironic (reachable, then drivers registered) and Ironic Inspector
    (reachable) against one shared deadline.

    The two service waits run as independent tasks, each with its own
    cancellation event. An empty driver listing is advisory unless
    ``require_drivers`` is set.
    """

    def __init__(
        self,
        ironic: Endpoint,
        inspector: Endpoint,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        require_drivers: bool = False,
        sequential: bool = False,
        now: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] | None = None,
        http_get: HttpGet = requests.get,
        on_progress: ProgressCallback | None = None,
        cache: ReadinessCache[ServiceReport] | None = None,
    ):
        self.ironic = ironic
        self.inspector = inspector
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self.request_timeout_s = request_timeout_s
        self.require_drivers = require_drivers
        self.sequential = sequential
        self.now = now
        self.sleep = sleep
        self.http_get = http_get
        self.on_progress = on_progress
        self.cache: ReadinessCache[ServiceReport] = cache or ReadinessCache(
            keep=lambda report: report.is_ready
        )

    def _client(self, endpoint: Endpoint) -> ServiceClient:
        return ServiceClient(
            endpoint, request_timeout_s=self.request_timeout_s, http_get=self.http_get
        )

    def _poller_kwargs(self, cancel: threading.Event) -> dict:
        return {
            "poll_interval_s": self.poll_interval_s,
            "cancel": cancel,
            "sleep": self.sleep,
            "on_progress": self.on_progress,
        }

    def wait_ironic(self, deadline: Deadline, cancel: threading.Event) -> ServiceReport:
        client = self._client(self.ironic)
        reachability = AvailabilityProber(client, **self._poller_kwargs(cancel)).wait(deadline)
        if not reachability.is_ready:
            return ServiceReport(
                self.ironic, reachability, require_capabilities=self.require_drivers
            )
        logger.info(f"{self.ironic.name} is reachable at {self.ironic.root_url}")

        verifier = CapabilityVerifier(
            client.iter_driver_pages, service=self.ironic.name, **self._poller_kwargs(cancel)
        )
        capabilities = verifier.wait(deadline)
        if capabilities.is_ready:
            logger.info(f"{self.ironic.name} has {capabilities.records} driver(s) loaded")
        elif not self.require_drivers:
            logger.warning(
                f"{self.ironic.name} has no drivers loaded; continuing since the API is up"
            )
        return ServiceReport(
            self.ironic, reachability, capabilities, require_capabilities=self.require_drivers
        )

    def wait_inspector(self, deadline: Deadline, cancel: threading.Event) -> ServiceReport:
        client = self._client(self.inspector)
        reachability = AvailabilityProber(client, **self._poller_kwargs(cancel)).wait(deadline)
        if reachability.is_ready:
            logger.info(f"{self.inspector.name} is reachable at {self.inspector.root_url}")
        return ServiceReport(self.inspector, reachability)

    def _cache_key(self, endpoint: Endpoint) -> str:
        if endpoint is self.ironic:
            # an empty driver listing only counts as ready when advisory
            return f"{endpoint.key}#require_drivers={self.require_drivers}"
        return endpoint.key

    def _guarded(
        self,
        endpoint: Endpoint,
        fn: Callable[[Deadline, threading.Event], ServiceReport],
        deadline: Deadline,
        cancel: threading.Event,
    ) -> ServiceReport:
        try:
            return self.cache.get_or_compute(
                self._cache_key(endpoint), lambda: fn(deadline, cancel)
            )
        except Exception as e:
            logger.exception(f"Unexpected error while waiting for {endpoint.name}")
            return ServiceReport(
                endpoint,
                ReadinessResult.failed(e),
                require_capabilities=endpoint is self.ironic and self.require_drivers,
            )

    def run(self) -> ReadinessReport:
        """Block until both services are ready or the shared deadline fires."""
        deadline = Deadline.after(self.timeout_s, now=self.now)
        tasks = [
            (self.ironic, self.wait_ironic, threading.Event()),
            (self.inspector, self.wait_inspector, threading.Event()),
        ]

        if self.sequential:
            ironic, inspector = (self._guarded(ep, fn, deadline, ev) for ep, fn, ev in tasks)
            return self._report(ironic, inspector)

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="wait-for") as exe:
            futures = [
                (exe.submit(self._guarded, ep, fn, deadline, ev), ep, ev) for ep, fn, ev in tasks
            ]
            pending = {f for f, _, _ in futures}
            while pending and not deadline.expired():
                _, pending = wait(pending, timeout=deadline.remaining())
            for fut, ep, ev in futures:
                if fut in pending:
                    logger.debug(f"Deadline reached, cancelling wait for {ep.name}")
                    ev.set()
            # leaving the pool lets in-flight requests finish on their own timeout
        ironic, inspector = (f.result() for f, _, _ in futures)
        return self._report(ironic, inspector)

    def _report(self, ironic: ServiceReport, inspector: ServiceReport) -> ReadinessReport:
        report = ReadinessReport(ironic=ironic, inspector=inspector)
        for warning in report.warnings:
            logger.warning(warning)
        if not report.ready:
            logger.error(report.message)
        return report

    def is_ready(self) -> bool:
        """
        One-shot check without waiting: Ironic root, Ironic drivers, then
        Inspector root, stopping at the first failure.

        Unlike ``run()``, a non-empty driver listing is mandatory here.
        """
        ironic = self._client(self.ironic)
        if not self._probe_once(ironic):
            return False
        drivers = count_records(ironic.iter_driver_pages)
        if drivers == 0:
            logger.info(f"{self.ironic.name} has no drivers loaded")
            return False
        return self._probe_once(self._client(self.inspector))

    def _probe_once(self, client: ServiceClient) -> bool:
        try:
            status = client.probe()
        except requests.RequestException as e:
            logger.info(f"{client.endpoint.name} is not reachable: {e}")
            return False
        if status != 200:
            logger.info(f"{client.endpoint.name} responded {status}")
            return False
        return True
