import os
import sys
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

os.environ.setdefault("USE_POSTGRES", "false")

from lostphones import container
from lostphones.domain.access import Principal
from lostphones.domain.accounts.models import Role, User
from lostphones.domain.shops.schemas import RegisterShopRequest
from lostphones.infra import jwt as jwt_helper
from lostphones.infra.password import hash_password
from lostphones.infra.storage import InMemoryObjectStorage
from lostphones.main import app
from lostphones.settings import settings

PASSWORD = "secret123"


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from lostphones.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def storage():
	"""Fresh in-memory repositories and object storage for every test."""
	store = InMemoryObjectStorage()
	container.configure_memory(storage=store)
	return store


@pytest.fixture(autouse=True)
def force_test_settings():
	original_env = settings.environment
	original_use_postgres = settings.use_postgres
	settings.environment = "dev"
	settings.use_postgres = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.use_postgres = original_use_postgres


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


async def create_account(username: str, *, role: Role = Role.USER, password: str = PASSWORD, **fields) -> User:
	user = User(
		id=str(uuid4()),
		username=username,
		password_hash=hash_password(password),
		role=role,
		phone_number=fields.pop("phone_number", "+94771234567"),
		**fields,
	)
	return await container.get_user_repository().create(user)


def principal_for(user: User) -> Principal:
	return Principal(id=user.id, role=user.role, username=user.username)


def auth_headers(user: User) -> dict[str, str]:
	return {"Authorization": f"Bearer {jwt_helper.encode_access(user.id, user.role.value)}"}


def shop_registration(**overrides) -> RegisterShopRequest:
	data = {
		"username": "acme",
		"email": "owner@acme.lk",
		"password": PASSWORD,
		"shop_name": "ACME Mobile",
		"owner_name": "Nimal Perera",
		"contact_number": "+94 77 123 4567",
		"address": "12 High Level Road",
		"location": "Nugegoda",
	}
	data.update(overrides)
	return RegisterShopRequest(**data)


@pytest_asyncio.fixture
async def admin_user() -> User:
	return await create_account("admin", role=Role.ADMIN)


@pytest_asyncio.fixture
async def member() -> User:
	return await create_account("kasun")


@pytest.fixture
def admin(admin_user: User) -> Principal:
	return principal_for(admin_user)


@pytest_asyncio.fixture
async def approved_shop(admin: Principal):
	"""A registered and approved shop; returns (owner, shop)."""
	service = container.get_shop_service()
	owner, shop = await service.register(shop_registration())
	shop = await service.approve(admin, shop.id)
	owner = await container.get_user_repository().get(owner.id)
	return owner, shop


def listing_payload(**overrides) -> dict:
	data = {
		"title": "Lost iPhone 13 near the bus stand",
		"description": "Blue iPhone 13 lost near the Nugegoda bus stand on Friday evening.",
		"brand": "Apple",
		"phone_model": "iPhone 13",
		"color": "Blue",
		"imei": "356938035643809",
		"district": "Colombo",
		"town": "Nugegoda",
		"lost_location": "Bus stand",
		"lost_date": "2024-03-01T18:30:00Z",
		"contact": {"name": "Kasun", "phone": "+94771234567", "email": "kasun@mail.lk"},
		"tags": ["urgent"],
	}
	data.update(overrides)
	return data


@pytest.fixture
def make_account():
	return create_account


@pytest.fixture
def as_principal():
	return principal_for


@pytest.fixture
def headers_for():
	return auth_headers


@pytest.fixture
def shop_form():
	return shop_registration


@pytest.fixture
def listing_data():
	return listing_payload
