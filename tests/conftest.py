"""
Pytest fixtures for the crowdfund test suite.

Provides:
- A deterministic clock, in-memory payout gateway and shared event log
- The shipped default platform configuration
- A registry wired with the default platform limits
- A freshly created sample project and a helper to create more
- Structured log capture
"""

import json
import logging
from io import StringIO

import pytest

from crowdfund_config import get_active_config
from crowdfund_kernel.domain.clock import DeterministicClock
from crowdfund_kernel.domain.dtos import ProjectParams
from crowdfund_kernel.domain.events import EventLog
from crowdfund_kernel.domain.payouts import InMemoryPayoutGateway
from crowdfund_kernel.domain.values import SECONDS_PER_DAY, UNIT, PlatformLimits
from crowdfund_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from crowdfund_services.registry import ProjectRegistry, RegistryStore

OPERATOR = "operator"
FEE_RECIPIENT = "treasury"
CREATOR = "alice"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as exercising real thread contention"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture crowdfund_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, project):
            ...
            logs = captured_logs()
            assert any(r["message"] == "investment_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("crowdfund_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def gateway():
    return InMemoryPayoutGateway()


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def config():
    return get_active_config()


@pytest.fixture
def limits():
    return PlatformLimits()


@pytest.fixture
def registry(gateway, clock, limits, event_log):
    store = RegistryStore.from_limits(OPERATOR, FEE_RECIPIENT, limits, event_log)
    return ProjectRegistry(store, gateway, clock=clock, limits=limits)


def _make_params(**overrides) -> ProjectParams:
    """Sample campaign: 100 unit target, 1 unit per token, 30 days."""
    values = dict(
        name="Solar Farm",
        symbol="SOL",
        total_supply=1_000 * UNIT,
        target_amount=100 * UNIT,
        duration=30 * SECONDS_PER_DAY,
        token_price=UNIT,
        vesting_duration=1_000,
        vesting_cliff=100,
        description="Community solar installation",
    )
    values.update(overrides)
    return ProjectParams(**values)


@pytest.fixture
def make_params():
    """Build ProjectParams from the sample campaign with field overrides."""
    return _make_params


@pytest.fixture
def create_project(registry):
    """Factory creating a campaign owned by CREATOR and returning its ledger."""

    def _create(creator: str = CREATOR, **overrides):
        result = registry.create_project(creator, _make_params(**overrides), UNIT)
        return registry.get_ledger(result.campaign_id)

    return _create


@pytest.fixture
def project(create_project):
    return create_project()
