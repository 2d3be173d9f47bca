# tests/conftest.py
"""
Shared fixtures: a throwaway SQLite database per test, the services wired on
top of it, an ASGI client for the HTTP surface, and an ECDSA key pair for
minting bearer tokens.
"""
from __future__ import annotations

import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from httpx import ASGITransport, AsyncClient
from jose import jwt

from booking import BookingService
from catalog import CatalogService
from config import Settings
from database import create_engine, init_db
from identity import Caller
from main import create_app
from models import NO_CATEGORY
from storage import StorageGateway

ADMIN_IDX = 1
MEMBER_IDX = 2
AUDIENCE = "reservation"
ISSUER = "id"
REPEAT_LIMIT = 10


# Make anyio run on asyncio (so our async fixtures work everywhere)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def ec_keys() -> tuple[str, str]:
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def settings(tmp_path, ec_keys) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'reservation.db'}",
        schedule_repeat_limit=REPEAT_LIMIT,
        schedule_time_range_limit=365 * 24 * 3600,
        admin_permission_idx=ADMIN_IDX,
        jwt_public_key=ec_keys[1],
        jwt_audience=AUDIENCE,
        jwt_issuer=ISSUER,
    )


@pytest.fixture
def make_token(ec_keys):
    def _make(user_idx: int, perm: int, **overrides) -> str:
        claims = {
            "iss": ISSUER,
            "aud": AUDIENCE,
            "exp": int(time.time()) + 100,
            "userIdx": user_idx,
            "username": f"user{user_idx}",
            "permission": perm,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(claims, ec_keys[0], algorithm="ES256")

    return _make


@pytest.fixture
def auth(make_token):
    def _auth(user_idx: int, permission: int = MEMBER_IDX) -> dict:
        return {"Authorization": f"Bearer {make_token(user_idx, permission)}"}

    return _auth


@pytest.fixture
async def engine(settings):
    engine = create_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def storage(engine) -> StorageGateway:
    return StorageGateway(engine)


@pytest.fixture
def booking(storage, settings) -> BookingService:
    return BookingService(
        storage,
        repeat_limit=settings.schedule_repeat_limit,
        admin_idx=settings.admin_permission_idx,
        time_range_limit=settings.schedule_time_range_limit,
    )


@pytest.fixture
def catalog(storage, settings) -> CatalogService:
    return CatalogService(storage, admin_idx=settings.admin_permission_idx)


@pytest.fixture
async def room_id(catalog, admin) -> int:
    room = await catalog.add_room(admin, "301-204", 12, NO_CATEGORY)
    return room.id


@pytest.fixture
def admin() -> Caller:
    return Caller(user_id=100, permission_idx=ADMIN_IDX, username="admin")


@pytest.fixture
def member() -> Caller:
    return Caller(user_id=1, permission_idx=MEMBER_IDX, username="doge")


@pytest.fixture
def other_member() -> Caller:
    return Caller(user_id=2, permission_idx=MEMBER_IDX, username="cat")


@pytest.fixture
async def client(settings, engine):
    app = create_app(settings, engine=engine)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
