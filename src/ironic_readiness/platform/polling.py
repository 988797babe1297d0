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
import threading
from typing import Callable

from ironic_readiness.exceptions import DeadlineExceeded, InvalidStateTransition
from ironic_readiness.platform.deadline import Deadline
from ironic_readiness.platform.protocols import ReadinessResult, WaitState

DEFAULT_POLL_INTERVAL_S = 5.0

_ALLOWED_TRANSITIONS = {
    WaitState.NOT_STARTED: {WaitState.POLLING},
    WaitState.POLLING: {WaitState.READY, WaitState.TIMED_OUT},
}

ProgressCallback = Callable[[str], None]

logger = logging.getLogger(__name__)


class FixedIntervalPoller:
    """
    Retry loop shared by the prober and the verifier.

    Attempts until ``_attempt()`` succeeds, the deadline passes or ``cancel``
    is set, sleeping ``poll_interval_s`` between attempts. There is no
    backoff. Cancellation is observed at iteration boundaries only, so an
    attempt already in flight always runs to completion.

    Testability: pass a fake ``sleep`` (and a Deadline with a fake clock).
    """

    timeout_log_level = logging.ERROR

    def __init__(
        self,
        *,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        cancel: threading.Event | None = None,
        sleep: Callable[[float], object] | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.poll_interval_s = poll_interval_s
        self.cancel = cancel or threading.Event()
        # Event.wait doubles as a sleep that wakes up on cancellation
        self._sleep = sleep or self.cancel.wait
        self.on_progress = on_progress
        self.state = WaitState.NOT_STARTED
        self.attempts = 0

    @property
    def description(self) -> str:
        raise NotImplementedError

    def _attempt(self) -> bool:
        raise NotImplementedError

    def _ready_result(self) -> ReadinessResult:
        return ReadinessResult.ready(attempts=self.attempts)

    def _timeout_result(
        self, reason: str, error: BaseException | None = None
    ) -> ReadinessResult:
        return ReadinessResult.timed_out(reason, attempts=self.attempts, error=error)

    def _transition(self, new_state: WaitState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS.get(self.state, set()):
            raise InvalidStateTransition(
                f"{type(self).__name__}: {self.state.value} -> {new_state.value} is not allowed"
            )
        self.state = new_state

    def _progress(self, msg: str) -> None:
        logger.debug(msg)
        if self.on_progress is not None:
            self.on_progress(msg)

    def wait(self, deadline: Deadline) -> ReadinessResult:
        self._transition(WaitState.POLLING)
        while not deadline.expired() and not self.cancel.is_set():
            self.attempts += 1
            if self._attempt():
                self._transition(WaitState.READY)
                return self._ready_result()
            self._sleep(self.poll_interval_s)

        self._transition(WaitState.TIMED_OUT)
        error = None
        if self.cancel.is_set() and not deadline.expired():
            reason = f"cancelled while waiting for {self.description}"
        else:
            error = DeadlineExceeded(self.description, deadline.timeout_s)
            reason = (
                f"timed out after {deadline.timeout_s:g}s waiting for {self.description}"
                f" ({self.attempts} attempts)"
            )
        logger.log(self.timeout_log_level, reason)
        return self._timeout_result(reason, error)
