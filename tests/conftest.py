# tests/conftest.py
"""
Global test bootstrap
- Test env (JWT secret, in-memory SQLite, limiter bypass) set BEFORE any app import
- Mounts a mock Redis client into app.core.redis_client
- Pulls in the fixture modules (db, app, users, catalog, origin, email)
"""

from __future__ import annotations

import os
import random

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (must precede app imports: settings and limiter read it at import)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-yunoa-0123456789abcdef")
os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("DEFAULT_RATE_LIMIT", "10000/minute")
os.environ.setdefault("RATE_LIMIT_NAMESPACE", f"pytest-{random.getrandbits(32)}")
os.environ.setdefault("LOG_TO_FILE", "0")
os.environ.setdefault("RENEWAL_REMINDERS_ENABLED", "false")
os.environ.setdefault("STRIPE_SECRET_KEY", "")

# ──────────────────────────────────────────────────────────────────────────────
# 🧪 Install mock Redis globally before any tests run
# ──────────────────────────────────────────────────────────────────────────────
from app.core.redis_client import redis_wrapper  # noqa: E402
from tests.fixtures.mocks.redis import MockRedisClient  # noqa: E402

redis_wrapper._client = MockRedisClient()

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Fixtures
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.db import *           # noqa: F401,F403,E402
from tests.fixtures.app import *          # noqa: F401,F403,E402
from tests.fixtures.users import *        # noqa: F401,F403,E402
from tests.fixtures.catalog import *      # noqa: F401,F403,E402
from tests.fixtures.utils import *        # noqa: F401,F403,E402
from tests.fixtures.mocks.email import *  # noqa: F401,F403,E402


# ──────────────────────────────────────────────────────────────────────────────
# 🔌 Redis: a clean mock per test
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def redis_client() -> MockRedisClient:
    """
    Fresh mock per test so counters, sessions and revocations never leak.
    Use it directly to inspect or pre-seed keys.
    """
    client = MockRedisClient()
    redis_wrapper._client = client
    return client


@pytest.fixture
def anyio_backend() -> str:
    """Run `@pytest.mark.anyio` tests on asyncio only."""
    return "asyncio"
