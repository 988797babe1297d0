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

import requests

from ironic_readiness.platform.clients import ServiceClient
from ironic_readiness.platform.polling import FixedIntervalPoller


class AvailabilityProber(FixedIntervalPoller):
    """Poll the service root until it answers exactly HTTP 200.

    Connection errors, request timeouts and any other status (including
    other 2xx and 3xx codes) are all retried the same way.
    """

    def __init__(self, client: ServiceClient, **kwargs):
        super().__init__(**kwargs)
        self.client = client

    @property
    def description(self) -> str:
        return f"{self.client.endpoint.name} at {self.client.endpoint.root_url}"

    def _attempt(self) -> bool:
        name = self.client.endpoint.name
        try:
            status = self.client.probe()
        except requests.RequestException as e:
            self._progress(f"Waiting for {name}: {type(e).__name__}")
            return False
        if status == 200:
            return True
        self._progress(f"{name} responded {status}, waiting …")
        return False
