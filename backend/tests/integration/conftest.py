"""API test fixtures: the app wired to the in-memory database and fake clock"""

import pytest
from httpx import AsyncClient, ASGITransport

from memofy.api.deps import get_db_dep, get_clock_dep
from memofy.main import app
from memofy.utils.jwt import create_access_token


@pytest.fixture
async def client(db, clock, users, seeded_roles):
    app.dependency_overrides[get_db_dep] = lambda: db
    app.dependency_overrides[get_clock_dep] = lambda: clock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Authorization header for a user"""

    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.user_id)}"}

    return _headers
