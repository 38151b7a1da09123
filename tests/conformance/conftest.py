"""Pytest configuration for conformance tests."""

import pytest
from tests.conformance.runners.apx_runner import ApxRunner


def get_available_runners():
    """Return list of available conformance runners."""
    runners = [ApxRunner()]
    return runners


@pytest.fixture(params=get_available_runners(), ids=lambda r: r.name)
def runner(request):
    """Provide conformance runner for testing.

    This fixture is parametrized to run tests against all available runners.
    Currently includes:
    - apx: Uses the apxlib parser and resolver
    """
    return request.param
