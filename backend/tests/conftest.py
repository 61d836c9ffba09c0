"""
Pytest Configuration and Fixtures

Shared fixtures: an in-memory Motor database (mongomock-motor), a
controllable clock, seeded role records and the three kinds of users.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

# Settings are read once at import time
os.environ.setdefault("JWT_SECRET", "memofy-test-secret-with-enough-length-for-hs256")
os.environ.setdefault("LOGS_PATH", os.path.join(tempfile.gettempdir(), "memofy-test-logs"))

import pytest
from mongomock_motor import AsyncMongoMockClient

from memofy.domain.enums import UserRole, MemoStatus
from memofy.domain.models import User, Memo
from memofy.engine.activity_logger import ActivityLogger
from memofy.engine.lock_manager import LockManager
from memofy.engine.memo_workflow import MemoWorkflow
from memofy.rbac.registry import list_roles
from memofy.rbac.resolver import PermissionResolver
from memofy.repositories.activity_repo import ActivityLogRepository
from memofy.repositories.lock_repo import LockRepository
from memofy.repositories.memo_repo import MemoRepository, AcknowledgmentRepository
from memofy.repositories.mongo_client import create_indexes
from memofy.repositories.role_repo import RoleRepository
from memofy.repositories.settings_repo import SystemSettingsRepository
from memofy.repositories.user_repo import UserRepository
from memofy.services.user_service import UserService
from memofy.utils.idgen import generate_memo_id


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2025, 3, 3, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int = 0, minutes: int = 0) -> datetime:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["memofy_test"]
    await create_indexes(database)
    return database


@pytest.fixture
async def seeded_roles(db):
    repo = RoleRepository(db)
    for role in list_roles():
        await repo.upsert_role(role)
    return repo


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def admin_user():
    return User(
        user_id="U-ADMIN",
        email="registrar@university.edu",
        first_name="Rosa",
        last_name="Delgado",
        role=UserRole.ADMIN
    )


@pytest.fixture
def second_admin():
    return User(
        user_id="U-ADMIN-2",
        email="it.office@university.edu",
        first_name="Kofi",
        last_name="Mensah",
        role=UserRole.ADMIN
    )


@pytest.fixture
def secretary_user():
    return User(
        user_id="U-SEC",
        email="cs.secretary@university.edu",
        first_name="Lena",
        last_name="Park",
        role=UserRole.SECRETARY,
        department="Computer Science",
        secretary_controls={"sendMemo": True, "archiveMemo": True}
    )


@pytest.fixture
def faculty_user():
    return User(
        user_id="U-FAC",
        email="j.okafor@university.edu",
        first_name="James",
        last_name="Okafor",
        role=UserRole.FACULTY,
        department="Computer Science"
    )


@pytest.fixture
async def users(db, admin_user, second_admin, secretary_user, faculty_user):
    repo = UserRepository(db)
    for user in (admin_user, second_admin, secretary_user, faculty_user):
        await repo.create_user(user)
    return repo


# =============================================================================
# Engine objects
# =============================================================================

@pytest.fixture
def activity_logger(db, clock):
    return ActivityLogger(ActivityLogRepository(db), clock=clock)


@pytest.fixture
def resolver(db, seeded_roles, activity_logger):
    return PermissionResolver(seeded_roles, activity_logger=activity_logger)


@pytest.fixture
def lock_manager(db, resolver, activity_logger, clock):
    return LockManager(
        LockRepository(db),
        SystemSettingsRepository(db),
        resolver=resolver,
        activity_logger=activity_logger,
        clock=clock
    )


@pytest.fixture
def workflow(db, resolver, activity_logger, clock):
    return MemoWorkflow(
        MemoRepository(db),
        AcknowledgmentRepository(db),
        activity_logger=activity_logger,
        resolver=resolver,
        clock=clock
    )


@pytest.fixture
def user_service(db, users, lock_manager, resolver, activity_logger, clock):
    return UserService(
        users,
        lock_manager=lock_manager,
        resolver=resolver,
        activity_logger=activity_logger,
        clock=clock
    )


@pytest.fixture
def make_memo(db, secretary_user, faculty_user):
    """Store a memo in the given status and return it"""
    repo = MemoRepository(db)

    async def _make(status: MemoStatus = MemoStatus.DRAFT, **fields) -> Memo:
        memo = Memo(
            memo_id=fields.pop("memo_id", generate_memo_id()),
            subject=fields.pop("subject", "Faculty meeting schedule"),
            content="The monthly faculty meeting moves to Thursday.",
            sender_id=secretary_user.user_id,
            recipients=fields.pop("recipients", [faculty_user.user_id, "U-FAC-2"]),
            department="Computer Science",
            status=status,
            **fields
        )
        return await repo.create_memo(memo)

    return _make
