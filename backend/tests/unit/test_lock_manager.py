"""Tests for LockManager (edit locks with lazy expiry)"""

import asyncio
from datetime import timedelta

import pytest

from memofy.domain.enums import ResourceType, ActivityAction
from memofy.domain.errors import (
    PermissionDeniedError, ValidationError, LockNotOwnedError, ResourceLockedError
)
from memofy.domain.models import ResourceLock, LockOwner
from memofy.engine.lock_manager import LOCK_MINUTES_KEY, LOCK_SECONDS_KEY
from memofy.utils.time import format_iso


async def _stored(lock_manager, resource_id="42", resource_type=ResourceType.USER):
    return await lock_manager.lock_repo.get(resource_type, resource_id)


# =============================================================================
# Duration
# =============================================================================

async def test_default_duration_is_one_minute_fifty(lock_manager):
    duration = await lock_manager.get_lock_duration()
    assert (duration.minutes, duration.seconds) == (1, 50)
    assert duration.total_seconds == 110


async def test_set_lock_duration_stores_both_parts(lock_manager, admin_user, activity_logger):
    result = await lock_manager.set_lock_duration(2, 15, admin_user)

    assert result.success
    assert result.message == "Lock duration updated successfully"
    assert result.duration_seconds == 135
    assert await lock_manager.settings_repo.get_value(LOCK_MINUTES_KEY) == 2
    assert await lock_manager.settings_repo.get_value(LOCK_SECONDS_KEY) == 15

    entries = await activity_logger.list_entries(action=ActivityAction.LOCK_DURATION_UPDATED.value)
    assert entries[0].details["previous"] == "1m 50s"


@pytest.mark.parametrize("minutes,seconds", [(0, 0), (61, 0), (1, 60), (-1, 30)])
async def test_set_lock_duration_rejects_out_of_range(lock_manager, admin_user, minutes, seconds):
    with pytest.raises(ValidationError):
        await lock_manager.set_lock_duration(minutes, seconds, admin_user)


async def test_set_lock_duration_requires_permission(lock_manager, secretary_user):
    with pytest.raises(PermissionDeniedError):
        await lock_manager.set_lock_duration(5, 0, secretary_user)


async def test_invalid_stored_duration_falls_back_to_default(lock_manager):
    await lock_manager.settings_repo.set_value(LOCK_MINUTES_KEY, "soon")
    duration = await lock_manager.get_lock_duration()
    assert duration.total_seconds == 110


# =============================================================================
# Acquire / refresh
# =============================================================================

async def test_acquire_grants_lock_for_configured_duration(lock_manager, admin_user, clock):
    result = await lock_manager.acquire(ResourceType.USER, "42", admin_user)

    assert result.success and result.locked
    assert result.message == "Lock acquired successfully"
    assert result.locked_by.id == admin_user.user_id
    assert result.locked_by.name == "Rosa Delgado"
    assert result.expires_at == format_iso(clock() + timedelta(seconds=110))
    assert result.seconds_remaining == 110


async def test_expiry_scenario_ninety_seconds(lock_manager, admin_user, second_admin, clock):
    await lock_manager.set_lock_duration(1, 30, admin_user)
    start = clock()

    first = await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    assert first.expires_at == format_iso(start + timedelta(seconds=90))

    clock.advance(seconds=95)
    status = await lock_manager.status(ResourceType.USER, "42")
    assert status.locked is False

    clock.advance(seconds=1)
    second = await lock_manager.acquire(ResourceType.USER, "42", second_admin)
    assert second.success and second.locked
    assert second.locked_by.id == second_admin.user_id


async def test_conflict_reports_owner_and_remaining_time(lock_manager, admin_user, second_admin, clock):
    await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    clock.advance(seconds=30)

    result = await lock_manager.acquire(ResourceType.USER, "42", second_admin)

    assert result.success is False
    assert result.locked is True
    assert result.message == "This user is currently being edited by another administrator"
    assert result.locked_by.email == "registrar@university.edu"
    assert result.seconds_remaining == 80


async def test_concurrent_acquires_have_one_winner(lock_manager, admin_user, second_admin, secretary_user):
    actors = [admin_user, second_admin, secretary_user]
    results = await asyncio.gather(
        *(lock_manager.acquire(ResourceType.USER, "42", actor) for actor in actors)
    )

    winners = [r for r in results if r.success]
    losers = [r for r in results if not r.success]
    assert len(winners) == 1
    assert len(losers) == 2
    for loser in losers:
        assert loser.locked is True
        assert loser.locked_by.id == winners[0].locked_by.id


async def test_refresh_resets_expiry_from_now(lock_manager, admin_user, clock, activity_logger):
    first = await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    clock.advance(seconds=60)

    refreshed = await lock_manager.heartbeat(ResourceType.USER, "42", admin_user)

    assert refreshed.message == "Lock refreshed"
    assert refreshed.lock_id == first.lock_id
    assert refreshed.locked_at == first.locked_at
    assert refreshed.expires_at == format_iso(clock() + timedelta(seconds=110))
    assert refreshed.expires_at > first.expires_at

    entries = await activity_logger.list_entries(action=ActivityAction.LOCK_ACQUIRED.value)
    assert len(entries) == 1


async def test_heartbeat_keeps_extended_expiry(lock_manager, admin_user, clock):
    await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    clock.advance(seconds=10)
    extended = await lock_manager.extend(ResourceType.USER, "42", admin_user, extra_minutes=10)
    clock.advance(seconds=5)

    beat = await lock_manager.heartbeat(ResourceType.USER, "42", admin_user)

    assert beat.message == "Lock refreshed"
    assert beat.expires_at == extended.expires_at
    assert format_iso((await _stored(lock_manager)).expires_at) == "2025-03-03T09:11:50Z"


async def test_duration_change_does_not_touch_existing_locks(lock_manager, admin_user):
    before = await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    await lock_manager.set_lock_duration(10, 0, admin_user)

    stored = await _stored(lock_manager)
    assert format_iso(stored.expires_at) == before.expires_at


async def test_locks_are_scoped_by_resource_type(lock_manager, admin_user, second_admin):
    await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    result = await lock_manager.acquire(ResourceType.MEMO, "42", second_admin)
    assert result.success


# =============================================================================
# Release / force release
# =============================================================================

async def test_owner_release_deletes_lock(lock_manager, admin_user):
    await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    result = await lock_manager.release(ResourceType.USER, "42", admin_user)

    assert result.success
    assert result.message == "Lock released successfully"
    assert await _stored(lock_manager) is None


async def test_non_owner_release_leaves_lock_unchanged(lock_manager, admin_user, second_admin):
    await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    before = await _stored(lock_manager)

    result = await lock_manager.release(ResourceType.USER, "42", second_admin)

    assert result.success is False
    assert result.message == "You do not own this lock"
    assert await _stored(lock_manager) == before


async def test_release_without_lock_is_a_no_op(lock_manager, admin_user):
    result = await lock_manager.release(ResourceType.USER, "42", admin_user)
    assert result.success
    assert result.message == "No active lock found"


async def test_force_release_removes_any_owner(lock_manager, admin_user, second_admin, activity_logger):
    await lock_manager.acquire(ResourceType.USER, "42", admin_user)

    result = await lock_manager.force_release(ResourceType.USER, "42", second_admin)

    assert result.message == "Lock forcefully released"
    assert result.locked_by.id == admin_user.user_id
    assert await _stored(lock_manager) is None
    entries = await activity_logger.list_entries(action=ActivityAction.LOCK_FORCE_RELEASED.value)
    assert entries[0].details["previous_owner"]["id"] == admin_user.user_id

    again = await lock_manager.force_release(ResourceType.USER, "42", second_admin)
    assert again.message == "No lock exists"


# =============================================================================
# Status / lazy expiry
# =============================================================================

async def test_status_removes_expired_lock(lock_manager, admin_user, clock):
    now = clock()
    await lock_manager.lock_repo.claim(
        ResourceLock(
            lock_id="LCK-stale",
            resource_type=ResourceType.USER,
            resource_id="42",
            locked_by=LockOwner(id=admin_user.user_id, name="Rosa Delgado", email=str(admin_user.email)),
            locked_at=now - timedelta(seconds=111),
            expires_at=now - timedelta(seconds=1)
        ),
        now
    )

    result = await lock_manager.status(ResourceType.USER, "42")

    assert result.locked is False
    assert await _stored(lock_manager) is None


async def test_status_of_free_resource(lock_manager):
    result = await lock_manager.status(ResourceType.USER, "42")
    assert result.locked is False
    assert result.message == "No lock exists"


async def test_lock_expiring_exactly_now_is_expired(lock_manager, admin_user, second_admin, clock):
    await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    clock.advance(seconds=110)

    result = await lock_manager.acquire(ResourceType.USER, "42", second_admin)
    assert result.success
    assert result.locked_by.id == second_admin.user_id


# =============================================================================
# Extend
# =============================================================================

async def test_extend_adds_to_current_expiry(lock_manager, admin_user, clock):
    first = await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    clock.advance(seconds=10)

    result = await lock_manager.extend(ResourceType.USER, "42", admin_user, extra_minutes=2)

    assert result.message == "Lock extended successfully"
    stored = await _stored(lock_manager)
    assert format_iso(stored.expires_at - timedelta(minutes=2)) == first.expires_at


async def test_extend_by_non_owner_is_refused(lock_manager, admin_user, second_admin):
    await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    before = await _stored(lock_manager)

    result = await lock_manager.extend(ResourceType.USER, "42", second_admin, extra_seconds=30)

    assert result.success is False
    assert result.locked is True
    assert await _stored(lock_manager) == before


async def test_extend_missing_lock(lock_manager, admin_user):
    result = await lock_manager.extend(ResourceType.USER, "42", admin_user, extra_seconds=30)
    assert result.success is False
    assert result.message == "No lock found to extend"


async def test_extend_requires_positive_delta(lock_manager, admin_user):
    with pytest.raises(ValidationError):
        await lock_manager.extend(ResourceType.USER, "42", admin_user)


# =============================================================================
# Listing / cleanup / guard
# =============================================================================

async def test_list_active_skips_and_sweeps_expired(lock_manager, admin_user, second_admin, clock):
    await lock_manager.acquire(ResourceType.USER, "1", admin_user)
    clock.advance(seconds=100)
    await lock_manager.acquire(ResourceType.USER, "2", second_admin)
    clock.advance(seconds=20)

    active = await lock_manager.list_active()

    assert [lock.resource_id for lock in active] == ["2"]
    assert await _stored(lock_manager, "1") is None
    assert await lock_manager.list_active(owner_id=admin_user.user_id) == []


async def test_cleanup_expired_is_idempotent(lock_manager, admin_user, second_admin, clock, activity_logger):
    await lock_manager.acquire(ResourceType.USER, "1", admin_user)
    await lock_manager.acquire(ResourceType.USER, "2", second_admin)
    clock.advance(seconds=200)
    await lock_manager.acquire(ResourceType.USER, "3", admin_user)

    assert await lock_manager.cleanup_expired() == 2
    assert await lock_manager.cleanup_expired() == 0
    assert await _stored(lock_manager, "3") is not None

    entries = await activity_logger.list_entries(action=ActivityAction.LOCKS_CLEANED_UP.value)
    assert len(entries) == 1
    assert entries[0].actor.id == "system"


async def test_ensure_held(lock_manager, admin_user, second_admin):
    with pytest.raises(LockNotOwnedError):
        await lock_manager.ensure_held(ResourceType.USER, "42", admin_user)

    await lock_manager.acquire(ResourceType.USER, "42", admin_user)
    held = await lock_manager.ensure_held(ResourceType.USER, "42", admin_user)
    assert held.locked_by.id == admin_user.user_id

    with pytest.raises(ResourceLockedError) as exc_info:
        await lock_manager.ensure_held(ResourceType.USER, "42", second_admin)
    assert exc_info.value.details["locked_by"]["id"] == admin_user.user_id
    assert exc_info.value.http_status == 409


# =============================================================================
# Who may lock
# =============================================================================

async def test_faculty_cannot_lock_user_records(lock_manager, faculty_user, admin_user):
    with pytest.raises(PermissionDeniedError) as exc_info:
        await lock_manager.acquire(ResourceType.USER, admin_user.user_id, faculty_user)
    assert exc_info.value.details["permission"] == "faculty.edit"

    assert await _stored(lock_manager, admin_user.user_id) is None
    result = await lock_manager.acquire(ResourceType.USER, admin_user.user_id, admin_user)
    assert result.success is True


async def test_faculty_cannot_lock_memos_or_heartbeat(lock_manager, faculty_user):
    with pytest.raises(PermissionDeniedError) as exc_info:
        await lock_manager.acquire(ResourceType.MEMO, "MEM-1", faculty_user)
    assert exc_info.value.details["permission"] == "memo.edit"

    with pytest.raises(PermissionDeniedError):
        await lock_manager.heartbeat(ResourceType.MEMO, "MEM-1", faculty_user)


async def test_secretary_may_lock_users_and_memos(lock_manager, secretary_user):
    assert (await lock_manager.acquire(ResourceType.USER, "U-FAC", secretary_user)).success
    assert (await lock_manager.acquire(ResourceType.MEMO, "MEM-1", secretary_user)).success
