from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import update

from chat_client.domain.entities.user import Credential
from chat_client.infrastructure.db.models import CredentialEntryModel
from chat_client.infrastructure.db.repositories.credential_store import USER_KEY, SqlCredentialStore
from chat_client.infrastructure.db.session import (
    create_credentials_engine,
    create_schema,
    make_session_factory,
)
from tests.conftest import make_user


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'credentials.db'}"


@pytest_asyncio.fixture
async def open_store(db_url):
    stores: list[SqlCredentialStore] = []

    async def _open() -> SqlCredentialStore:
        engine = create_credentials_engine(db_url)
        await create_schema(engine)
        store = SqlCredentialStore(make_session_factory(engine), engine)
        stores.append(store)
        return store

    yield _open
    for store in stores:
        await store.aclose()


@pytest.mark.asyncio
async def test_empty_store_has_no_credential(open_store):
    store = await open_store()

    assert await store.load() is None
    assert await store.get_token() is None


@pytest.mark.asyncio
async def test_credential_survives_restart(open_store):
    user = make_user(1, "a", email="a@example.com")
    first = await open_store()
    await first.save("t1", user)
    await first.aclose()

    reopened = await open_store()

    assert await reopened.load() == Credential(token="t1", user=user)
    assert await reopened.get_token() == "t1"


@pytest.mark.asyncio
async def test_save_replaces_previous_credential(open_store):
    store = await open_store()
    await store.save("t1", make_user(1, "a"))
    await store.save("t2", make_user(2, "b"))

    assert await store.load() == Credential(token="t2", user=make_user(2, "b"))


@pytest.mark.asyncio
async def test_update_user_keeps_token(open_store):
    store = await open_store()
    await store.save("t1", make_user(1, "a"))

    await store.update_user(make_user(1, "alice"))

    assert await store.load() == Credential(token="t1", user=make_user(1, "alice"))


@pytest.mark.asyncio
async def test_clear(open_store):
    store = await open_store()
    await store.save("t1", make_user())

    await store.clear()

    assert await store.load() is None


@pytest.mark.asyncio
async def test_corrupt_profile_leaves_token_only(db_url):
    engine = create_credentials_engine(db_url)
    await create_schema(engine)
    factory = make_session_factory(engine)
    store = SqlCredentialStore(factory, engine)
    await store.save("t1", make_user())
    async with factory() as session:
        await session.execute(
            update(CredentialEntryModel)
            .where(CredentialEntryModel.key == USER_KEY)
            .values(value="{not json")
        )
        await session.commit()

    assert await store.load() == Credential(token="t1", user=None)
    await store.aclose()
