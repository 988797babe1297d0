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

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

MICROVERSION_HEADER = "X-OpenStack-Ironic-API-Version"

CapabilityRecord = Mapping[str, Any]


class WaitState(str, Enum):
    """Lifecycle of a single prober or verifier wait."""

    NOT_STARTED = "NOT_STARTED"
    POLLING = "POLLING"
    READY = "READY"
    TIMED_OUT = "TIMED_OUT"


class ReadinessPhase(str, Enum):
    """Terminal outcome of a wait."""

    READY = "READY"
    TIMED_OUT = "TIMED_OUT"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Endpoint:
    """Base URL of one service, plus the API microversion to request.

    Attributes
    ----------
    name: str
        Human readable service name (e.g. "Ironic"), used in messages.
    url: str
        Base URL as configured, e.g. "http://ironic:6385/v1/".
    microversion: str | None
        Value for the Ironic API version header, if any.
    """

    name: str
    url: str
    microversion: str | None = None

    @property
    def root_url(self) -> str:
        # Ironic answers 404 on "/v1/" but 200 on "/v1"
        return self.url.rstrip("/")

    def join(self, path: str) -> str:
        return f"{self.root_url}/{path.lstrip('/')}"

    @property
    def headers(self) -> dict[str, str]:
        if not self.microversion:
            return {}
        return {MICROVERSION_HEADER: self.microversion}

    @property
    def key(self) -> str:
        # one entry per service URL and microversion
        return f"{self.name}@{self.root_url}#{self.microversion or ''}"


@dataclass(frozen=True)
class ReadinessResult:
    phase: ReadinessPhase
    reason: str | None = None
    error: BaseException | None = None
    attempts: int = 0
    records: int | None = None

    @classmethod
    def ready(cls, *, attempts: int = 0, records: int | None = None) -> "ReadinessResult":
        return cls(ReadinessPhase.READY, attempts=attempts, records=records)

    @classmethod
    def timed_out(
        cls,
        reason: str,
        *,
        attempts: int = 0,
        records: int | None = None,
        error: BaseException | None = None,
    ) -> "ReadinessResult":
        return cls(
            ReadinessPhase.TIMED_OUT, reason=reason, error=error, attempts=attempts, records=records
        )

    @classmethod
    def failed(cls, error: BaseException) -> "ReadinessResult":
        return cls(ReadinessPhase.FAILED, reason=str(error) or type(error).__name__, error=error)

    @property
    def is_ready(self) -> bool:
        return self.phase is ReadinessPhase.READY


class HttpGet(Protocol):
    def __call__(
        self, url: str, *, timeout: float, headers: Mapping[str, str] | None = None
    ) -> Any: ...


class CapabilityLister(Protocol):
    """Returns the pages of one capability listing call.

    Iterating may raise part-way through; callers must discard partial counts.
    """

    def __call__(self) -> Iterable[Sequence[CapabilityRecord]]: ...
