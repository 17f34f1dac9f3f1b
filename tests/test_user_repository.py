"""
Tests for the SQLAlchemy user repository and the users directory.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from kpower.application.user_directory import UserDirectory, paginate
from kpower.core.interfaces import UserListQuery
from kpower.db.models import UserModel
from kpower.domain.errors import InputError, ServerError
from kpower.domain.value_objects import InviteCode, Username
from kpower.repositories.user_repository import UserRepository


async def seed_users(session, count: int, prefix: str = "user", referred_by: str = None):
    """Insert users with strictly increasing created_at"""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(count):
        session.add(UserModel(
            username=f"{prefix}{i:03d}",
            invite_code=f"{prefix[:3]}{1001 + i}",
            referred_by=referred_by,
            created_at=base + timedelta(minutes=i),
        ))
    await session.commit()


# ============================================
# Lookups and creation
# ============================================

@pytest.mark.asyncio
async def test_create_and_get_by_username(users):
    await users.create(Username("alice"), InviteCode("ali1234"))

    user = await users.get_by_username(Username("alice"))

    assert user.username == Username("alice")
    assert user.invite_code == InviteCode("ali1234")
    assert user.referred_by is None
    assert user.referrals == 0


@pytest.mark.asyncio
async def test_get_missing_user(users):
    assert await users.get_by_username(Username("nobody")) is None
    assert await users.get_by_invite_code(InviteCode("nob1234")) is None


@pytest.mark.asyncio
async def test_get_by_invite_code(users):
    await users.create(Username("alice"), InviteCode("ali1234"))

    owner = await users.get_by_invite_code(InviteCode("ali1234"))

    assert owner.username == Username("alice")
    assert await users.invite_code_exists(InviteCode("ali1234")) is True
    assert await users.invite_code_exists(InviteCode("ali9999")) is False


@pytest.mark.asyncio
async def test_referral_count_derived_on_read(users):
    await users.create(Username("alice"), InviteCode("ali1234"))
    await users.create(Username("bobby"), InviteCode("bob1234"), Username("alice"))
    await users.create(Username("carol"), InviteCode("car1234"), Username("alice"))

    alice = await users.get_by_username(Username("alice"))
    bobby = await users.get_by_username(Username("bobby"))

    assert alice.referrals == 2
    assert bobby.referrals == 0
    assert bobby.referred_by == Username("alice")


@pytest.mark.asyncio
async def test_duplicate_username_is_server_error(users):
    await users.create(Username("alice"), InviteCode("ali1234"))

    with pytest.raises(ServerError):
        await users.create(Username("alice"), InviteCode("ali5678"))


@pytest.mark.asyncio
async def test_duplicate_invite_code_is_server_error(users):
    await users.create(Username("alice"), InviteCode("ali1234"))

    with pytest.raises(ServerError):
        await users.create(Username("alicia"), InviteCode("ali1234"))

    # Nothing half-created, and the session is still usable
    assert await users.get_by_username(Username("alicia")) is None


@pytest.mark.asyncio
async def test_driver_errors_translated(session, monkeypatch):
    async def broken_execute(*args, **kwargs):
        raise OperationalError("select", {}, Exception("connection refused"))

    monkeypatch.setattr(session, "execute", broken_execute)
    repository = UserRepository(session)

    with pytest.raises(ServerError) as exc_info:
        await repository.get_by_username(Username("alice"))

    assert "connection refused" not in str(exc_info.value)


# ============================================
# Listing
# ============================================

@pytest.mark.asyncio
async def test_list_excludes_requesting_user(session, users):
    await seed_users(session, 5)

    listed, total = await users.list_users(UserListQuery(auth_user="user002"))

    names = [user.username.value for user in listed]
    assert "user002" not in names
    assert total == 4


@pytest.mark.asyncio
async def test_list_newest_first(session, users):
    await seed_users(session, 3)

    listed, _ = await users.list_users(UserListQuery(auth_user="someone"))

    assert [user.username.value for user in listed] == ["user002", "user001", "user000"]


@pytest.mark.asyncio
async def test_list_substring_match(session, users):
    await seed_users(session, 3, prefix="alpha")
    await seed_users(session, 2, prefix="beta")

    listed, total = await users.list_users(UserListQuery(auth_user="someone", username="lph"))

    assert total == 3
    assert all("lph" in user.username.value for user in listed)


@pytest.mark.asyncio
async def test_list_wildcards_are_literal(session, users):
    await seed_users(session, 3)

    listed, total = await users.list_users(UserListQuery(auth_user="someone", username="%"))

    assert listed == []
    assert total == 0


@pytest.mark.asyncio
async def test_list_window(session, users):
    await seed_users(session, 25)

    listed, total = await users.list_users(UserListQuery(auth_user="someone", skip=10, limit=10))

    assert total == 25
    assert len(listed) == 10
    assert listed[0].username.value == "user014"


# ============================================
# Pagination
# ============================================

def test_paginate_middle_page():
    pagination = paginate(page=2, limit=10, total=25)

    assert pagination.total_pages == 3
    assert pagination.has_next is True
    assert pagination.has_prev is True
    assert pagination.current_page == 2


def test_paginate_exact_multiple_adds_page():
    pagination = paginate(page=2, limit=10, total=20)

    assert pagination.total_pages == 3
    assert pagination.has_next is True


def test_paginate_empty():
    pagination = paginate(page=1, limit=10, total=0)

    assert pagination.total_pages == 1
    assert pagination.has_next is False
    assert pagination.has_prev is False


def test_paginate_rejects_non_positive():
    with pytest.raises(InputError):
        paginate(page=0, limit=10, total=5)
    with pytest.raises(InputError):
        paginate(page=1, limit=0, total=5)


@pytest.mark.asyncio
async def test_directory_page_two_of_twenty_five(session, users):
    await seed_users(session, 25)
    await users.create(Username("me_user"), InviteCode("me_1001"))
    me = await users.get_by_username(Username("me_user"))

    page = await UserDirectory(users).list_users(me, page=2, limit=10)
    body = page.to_dict()

    assert len(body["users"]) == 10
    assert body["hasPrev"] is True
    assert body["hasNext"] is True
    assert body["currentPage"] == 2
    assert body["totalPages"] == 3
    assert all(user["username"] != "me_user" for user in body["users"])
