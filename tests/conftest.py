"""
Pytest configuration and shared fixtures for gateway tests

APPROACH: replace DatabaseConnection with an in-memory fake
- The fake implements the same async surface the gateway uses
- Every statement the gateway sends is recorded for assertions
- No PostgreSQL server is needed to run the suite
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from server import Gateway
from tests.gateway_test_utils import FakeDatabase, FakeClock, make_config


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway(fake_db, clock):
    """Gateway over the fake database, no secret, no rate limit"""
    return Gateway(make_config(), db=fake_db, clock=clock)
