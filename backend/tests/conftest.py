"""Shared fixtures.

Database tests run each scenario inside one event loop against a fresh
in-memory SQLite database created from the model metadata.
"""

import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RESEND_API_KEY", "")

import pytest

from factories import create_session_factory


@pytest.fixture
def run_db():
    """Run ``scenario(session_factory)`` against a fresh database."""

    def runner(scenario):
        async def main():
            engine, session_factory = await create_session_factory()
            try:
                return await scenario(session_factory)
            finally:
                await engine.dispose()

        return asyncio.run(main())

    return runner
