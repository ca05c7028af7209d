"""
HTTP-level fixtures

The app is built with the shared factory and wired like production, with the
database and checkout provider overridden in the DI container. The lifespan
is not run, so no background sweeper or scheduler is started.
"""

from collections.abc import AsyncGenerator, Generator
from typing import Dict

from dependency_injector import providers
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
import pytest
from uuid_utils.compat import uuid7

from settlement_engine.platform.app_factory import create_app
from settlement_engine.platform.config.di import container
from settlement_engine.platform.config.wire_modules import WIRE_MODULES


@pytest.fixture
def app(database, fake_checkout_provider) -> Generator[FastAPI, None, None]:
    container.database.override(providers.Object(database))
    container.checkout_session_provider.override(providers.Object(fake_checkout_provider))
    container.wire(modules=WIRE_MODULES)

    yield create_app(title_suffix=' (Test)')

    container.unwire()
    container.checkout_session_provider.reset_override()
    container.database.reset_override()
    container.reset_singletons()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac


def _bearer(token: str) -> Dict[str, str]:
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def buyer_headers(buyer_id) -> Dict[str, str]:
    return _bearer(container.jwt_auth().create_jwt_token(user_id=buyer_id))


@pytest.fixture
def another_buyer_headers(another_buyer_id) -> Dict[str, str]:
    return _bearer(container.jwt_auth().create_jwt_token(user_id=another_buyer_id))


@pytest.fixture
def system_headers() -> Dict[str, str]:
    return _bearer(container.jwt_auth().create_jwt_token(user_id=uuid7(), role='system'))
