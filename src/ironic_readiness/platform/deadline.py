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

from dataclasses import dataclass, field
import time
from typing import Callable


@dataclass(frozen=True)
class Deadline:
    """Absolute cutoff shared by every wait of one orchestrator run.

    Built once from ``now() + timeout_s`` and never extended.
    """

    expires_at: float
    timeout_s: float
    now: Callable[[], float] = field(default=time.monotonic, repr=False, compare=False)

    @classmethod
    def after(cls, timeout_s: float, *, now: Callable[[], float] = time.monotonic) -> "Deadline":
        return cls(expires_at=now() + timeout_s, timeout_s=timeout_s, now=now)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self.now())

    def expired(self) -> bool:
        return self.now() >= self.expires_at
