import pytest
from campuspoll.core.auth import Principal
from campuspoll.core.errors import AuthenticationError, InvalidInputError, NotFoundError, PermissionDeniedError
from campuspoll.core.schema import ProfileForm, UserCreate, UserUpdate
from campuspoll.core.users import (
    create_user,
    find_user,
    list_users,
    promote_user,
    save_profile,
    sync_webhook_user,
    update_user,
)


def webhook_data(clerk_id="user_2abc", email="Jane@Campus.edu", **extra):
    return {
        "id": clerk_id,
        "email_addresses": [{"email_address": email}],
        "first_name": "Jane",
        "last_name": "Doe",
        **extra,
    }


async def test_create_and_find_by_either_id(db):
    doc = await create_user(db, UserCreate(clerkId="user-a", email="A@Campus.edu"))

    assert doc["email"] == "a@campus.edu"
    assert doc["accountCreated"] is False
    assert doc["isMod"] is False
    assert (await find_user(db, "user-a"))["_id"] == doc["_id"]
    assert (await find_user(db, str(doc["_id"])))["clerkId"] == "user-a"


async def test_find_missing_user(db):
    with pytest.raises(NotFoundError):
        await find_user(db, "nobody")


async def test_bootstrap_moderators(db):
    doc = await create_user(db, UserCreate(clerkId="mod-1", email="mod@campus.edu"), moderators=["mod-1"])
    assert doc["isMod"] is True


async def test_duplicate_clerk_id_or_email(db):
    await create_user(db, UserCreate(clerkId="user-a", email="a@campus.edu"))
    with pytest.raises(InvalidInputError):
        await create_user(db, UserCreate(clerkId="user-a", email="other@campus.edu"))
    with pytest.raises(InvalidInputError):
        await create_user(db, UserCreate(clerkId="user-b", email="a@campus.edu"))


@pytest.mark.parametrize("email", ["", "   ", "not-an-email"])
def test_user_create_rejects_bad_email(email):
    with pytest.raises(ValueError):
        UserCreate(clerkId="user-a", email=email)


async def test_list_users(db):
    await create_user(db, UserCreate(clerkId="user-a", email="a@campus.edu"))
    await create_user(db, UserCreate(clerkId="user-b", email="b@campus.edu"))

    assert [u["clerkId"] for u in await list_users(db)] == ["user-a", "user-b"]


async def test_update_only_touches_given_fields(db):
    await create_user(db, UserCreate(clerkId="user-a", email="a@campus.edu", gender="Female", position="Student"))

    doc = await update_user(db, UserUpdate(id="user-a", position="Staff", year=1990))

    assert doc["gender"] == "Female"
    assert doc["position"] == "Staff"
    assert doc["year"] == 1990


async def test_update_missing_user(db):
    with pytest.raises(NotFoundError):
        await update_user(db, UserUpdate(id="nobody", gender="Male"))


async def test_save_profile_creates_then_completes(db, member):
    doc, created = await save_profile(db, None, ProfileForm(clerkId="user-a", email="a@campus.edu", gender="Male", year=2002))
    assert created is True
    assert doc["accountCreated"] is True

    doc, created = await save_profile(db, member, ProfileForm(clerkId="user-a", email="a@campus.edu", position="Faculty"))
    assert created is False
    assert doc["position"] == "Faculty"
    # fields left out of the form keep their stored values
    assert doc["gender"] == "Male"
    assert doc["year"] == 2002
    assert await db.users.count_documents({}) == 1


async def test_save_profile_of_existing_user_needs_its_owner(db, moderator):
    await create_user(db, UserCreate(clerkId="user-a", email="a@campus.edu", gender="Female", year=1980))
    form = ProfileForm(clerkId="user-a", email="x@evil.edu", gender="Male")

    with pytest.raises(AuthenticationError):
        await save_profile(db, None, form)
    with pytest.raises(PermissionDeniedError):
        await save_profile(db, Principal(user_id="user-b"), form)

    stored = await find_user(db, "user-a")
    assert (stored["gender"], stored["year"], stored["accountCreated"]) == ("Female", 1980, False)

    doc, created = await save_profile(db, moderator, form)
    assert created is False
    assert doc["gender"] == "Male"
    assert doc["email"] == "a@campus.edu"


async def test_webhook_user_is_mirrored_once(db):
    doc, created = await sync_webhook_user(db, webhook_data())

    assert created is True
    assert doc["clerkId"] == "user_2abc"
    assert doc["email"] == "jane@campus.edu"
    assert doc["first_name"] == "Jane"
    assert doc["accountCreated"] is False

    again, created = await sync_webhook_user(db, webhook_data(first_name="Changed"))
    assert created is False
    assert again["first_name"] == "Jane"


@pytest.mark.parametrize("data", [
    {"email_addresses": [{"email_address": "a@campus.edu"}]},
    {"id": "user_2abc", "email_addresses": []},
    {"id": "user_2abc", "email_addresses": [{"email_address": "broken"}]},
])
async def test_webhook_user_with_bad_payload(db, data):
    with pytest.raises(InvalidInputError):
        await sync_webhook_user(db, data)


async def test_promote_user(db, member, moderator):
    await create_user(db, UserCreate(clerkId="user-b", email="b@campus.edu"))

    with pytest.raises(PermissionDeniedError):
        await promote_user(db, member, "user-b")

    doc = await promote_user(db, moderator, "user-b")
    assert doc["isMod"] is True

    with pytest.raises(NotFoundError):
        await promote_user(db, moderator, "nobody")
