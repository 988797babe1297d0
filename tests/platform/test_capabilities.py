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

from ironic_readiness.exceptions import DeadlineExceeded, PaginationFailure
from ironic_readiness.platform.capabilities import CapabilityVerifier, count_records
from ironic_readiness.platform.clients import ServiceClient
from ironic_readiness.platform.deadline import Deadline
from ironic_readiness.platform.protocols import Endpoint, WaitState


def _pages(*pages):
    """A lister that yields the given pages; exceptions are raised in place."""

    def _list():
        for page in pages:
            if isinstance(page, Exception):
                raise page
            yield page

    return _list


def test_count_records_aggregates_all_pages():
    assert count_records(_pages([1, 2], [], [3])) == 3


def test_count_records_discards_partial_count_on_failure():
    assert count_records(_pages([1, 2], PaginationFailure("page 2 failed"))) == 0
    assert count_records(_pages(requests.ConnectionError("refused"))) == 0


def test_verifier_ready_on_first_non_empty_listing(clock):
    verifier = CapabilityVerifier(_pages([{"name": "ipmi"}]), sleep=clock.sleep)

    result = verifier.wait(Deadline.after(60, now=clock.now))

    assert result.is_ready
    assert result.records == 1
    assert clock.sleep_calls == 0
    assert verifier.state is WaitState.READY


def test_verifier_retries_until_drivers_register(clock):
    listings = [_pages([]), _pages([], []), _pages([{"name": "redfish"}])]

    def lister():
        return listings.pop(0)() if len(listings) > 1 else listings[0]()

    verifier = CapabilityVerifier(lister, sleep=clock.sleep)
    result = verifier.wait(Deadline.after(60, now=clock.now))

    assert result.is_ready
    assert result.attempts == 3
    assert clock.last_slept == [5.0, 5.0]


def test_verifier_times_out_when_listing_stays_empty(clock):
    verifier = CapabilityVerifier(_pages([]), sleep=clock.sleep)

    result = verifier.wait(Deadline.after(20, now=clock.now))

    assert not result.is_ready
    assert result.records == 0
    assert "Ironic drivers to be registered" in result.reason
    assert verifier.state is WaitState.TIMED_OUT
    assert isinstance(result.error, DeadlineExceeded)


def test_verifier_restarts_listing_after_mid_walk_failure(clock, network, make_driver):
    svc = network.add(
        "http://ironic.test/v1",
        drivers=[
            [[make_driver("ipmi")], 503],
            [[make_driver("ipmi")], [make_driver("redfish")]],
        ],
    )
    client = ServiceClient(Endpoint("Ironic", "http://ironic.test/v1"), http_get=network.get)
    verifier = CapabilityVerifier(client.iter_driver_pages, sleep=clock.sleep)

    result = verifier.wait(Deadline.after(60, now=clock.now))

    assert result.is_ready
    assert result.records == 2  # the partial count of the failed walk is not carried over
    assert svc.requests == (
        "/v1/drivers;/v1/drivers?page=1;/v1/drivers;/v1/drivers?page=1;"
    )
