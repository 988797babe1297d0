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

from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING

try:
    __version__ = version("ironic-readiness")
except PackageNotFoundError:  # during dev
    __version__ = "0.0.0"

__all__ = ["Endpoint", "ReadinessOrchestrator", "ReadinessReport", "ReadinessResult"]


def __getattr__(name: str):
    if name in ("ReadinessOrchestrator", "ReadinessReport"):
        from .core import orchestrator

        return getattr(orchestrator, name)
    if name in ("Endpoint", "ReadinessResult"):
        from .platform import protocols

        return getattr(protocols, name)
    raise AttributeError(name)


if TYPE_CHECKING:
    from .core.orchestrator import ReadinessOrchestrator, ReadinessReport
    from .platform.protocols import Endpoint, ReadinessResult
