"""Unit tests for UserDirectory"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from nexticket.auth.passwords import verify_password
from nexticket.errors import PermissionDeniedError, UserDirectoryError
from nexticket.session.context import AppContext
from nexticket.users.service import UserDirectory, UserForm


@pytest.fixture
def directory(store, dev):
    return UserDirectory(store, AppContext(user=dev))


@pytest.mark.asyncio
async def test_load_orders_by_name(directory):
    users = await directory.load()

    assert [u.name for u in users] == sorted(u.name for u in users)
    assert len(users) == 5


@pytest.mark.asyncio
async def test_non_elevated_user_is_refused(store, requester):
    with pytest.raises(PermissionDeniedError):
        await UserDirectory(store, AppContext(user=requester)).load()


@pytest.mark.asyncio
async def test_search_matches_name_or_email(directory):
    await directory.load()

    assert [u.email for u in directory.search("bruno")] == ["bruno@nexticket.io"]
    assert {u.email for u in directory.search("CLIENTE.COM")} == {
        "carla@cliente.com",
        "eva@cliente.com",
    }
    assert len(directory.search("")) == 5


@pytest.mark.asyncio
async def test_create_requires_password(directory, store):
    with pytest.raises(UserDirectoryError):
        await directory.create(UserForm(name="Fabio", email="fabio@cliente.com"))

    assert store.count("insert", "users") == 0


@pytest.mark.asyncio
async def test_create_stores_hash_and_avatar(directory, store):
    created = await directory.create(
        UserForm(name="fabio melo", email="Fabio@Cliente.com", role="DEV", password="nova-senha")
    )

    row = next(r for r in store.tables["users"] if r["email"] == "fabio@cliente.com")
    assert row["password_hash"] != "nova-senha"
    assert verify_password("nova-senha", row["password_hash"])
    assert row["avatar"] == "F"
    assert created.is_elevated
    assert directory.get(created.id) is not None


@pytest.mark.asyncio
async def test_update_keeps_hash_without_new_password(directory, store):
    await directory.load()
    before = store.tables["users"][3]["password_hash"]

    updated = await directory.update(
        "u-carla", UserForm(name="Carla Dias Souza", email="carla@cliente.com")
    )

    assert updated.name == "Carla Dias Souza"
    assert store.tables["users"][3]["password_hash"] == before


@pytest.mark.asyncio
async def test_update_with_password_rehashes(directory, store):
    await directory.update(
        "u-carla", UserForm(name="Carla Dias", email="carla@cliente.com", password="trocada")
    )

    assert verify_password("trocada", store.tables["users"][3]["password_hash"])


@pytest.mark.asyncio
async def test_update_unknown_user_fails(directory):
    with pytest.raises(UserDirectoryError):
        await directory.update("u-nobody", UserForm(name="X", email="x@x.com"))


@pytest.mark.asyncio
async def test_toggle_status_flips_and_persists(directory, store):
    await directory.load()

    toggled = await directory.toggle_status("u-eva")

    assert toggled.status == "ACTIVE"
    assert store.tables["users"][4]["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_failed_toggle_reloads_and_raises(directory, store):
    await directory.load()
    store.fail_next("update", "users")

    with pytest.raises(UserDirectoryError):
        await directory.toggle_status("u-carla")

    assert directory.get("u-carla").status == "ACTIVE"


def test_form_rejects_blank_name_and_bad_email():
    with pytest.raises(ValidationError):
        UserForm(name="   ", email="a@b.com")
    with pytest.raises(ValidationError):
        UserForm(name="Ana", email="sem-arroba")
