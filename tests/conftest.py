"""Shared fixtures: in-memory database, sessions, seed factories and the API client."""

from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from datetime import datetime
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from songstock.config import AuthSettings, DatabaseSettings, Settings
from songstock.domain.entities import (
    Album,
    Artist,
    Category,
    Product,
    ProductType,
    Provider,
    User,
    UserRole,
    VerificationStatus,
)
from songstock.infrastructure.persistence import Database
from songstock.infrastructure.persistence.repositories import (
    AlbumRepository,
    ArtistRepository,
    CategoryRepository,
    ProductRepository,
    ProviderRepository,
    UserRepository,
)
from songstock.infrastructure.security import PasswordHasher
from songstock.main import create_app

TEST_PASSWORD = "secret123"
# Low iteration count keeps hashing fast in tests.
TEST_HASH_ITERATIONS = 1000


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="testing",
        log_level="DEBUG",
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        auth=AuthSettings(password_hash_iterations=TEST_HASH_ITERATIONS),
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
async def session(db: Database) -> AsyncGenerator[AsyncSession, None]:
    async with db.session_scope() as s:
        yield s


# =============================================================================
# SEED FACTORIES
# =============================================================================

UserFactory = Callable[..., Awaitable[User]]


@pytest.fixture
def user_factory(session: AsyncSession) -> UserFactory:
    """Create users with sensible defaults; keyword args override fields."""
    repo = UserRepository(session)
    hasher = PasswordHasher(TEST_HASH_ITERATIONS)
    counter = {"n": 0}

    async def _create(
        username: str | None = None,
        role: UserRole = UserRole.CUSTOMER,
        is_active: bool = True,
        created_at: datetime | None = None,
        **fields: Any,
    ) -> User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", f"User{counter['n']}"),
            password_hash=hasher.hash(TEST_PASSWORD),
            role=role,
            is_active=is_active,
            **fields,
        )
        if created_at is not None:
            user.created_at = created_at
            user.updated_at = created_at
        return await repo.add(user)

    return _create


@pytest.fixture
def provider_factory(
    session: AsyncSession, user_factory: UserFactory
) -> Callable[..., Awaitable[tuple[User, Provider]]]:
    """Create a PROVIDER user together with its provider record."""
    repo = ProviderRepository(session)

    async def _create(
        username: str | None = None,
        business_name: str = "Vinyl Corner",
        status: VerificationStatus = VerificationStatus.PENDING,
        **user_fields: Any,
    ) -> tuple[User, Provider]:
        user = await user_factory(username=username, role=UserRole.PROVIDER, **user_fields)
        assert user.id is not None
        provider = Provider(user_id=user.id, business_name=business_name, tax_id="900123")
        if status != VerificationStatus.PENDING:
            provider.set_verification_status(status)
        return user, await repo.add(provider)

    return _create


@pytest.fixture
async def catalog(session: AsyncSession) -> dict[str, Any]:
    """One artist, one album and one category to hang products on."""
    artist = await ArtistRepository(session).add(Artist(name="Los Aterciopelados"))
    assert artist.id is not None
    album = await AlbumRepository(session).add(
        Album(title="La Pipa de la Paz", artist_id=artist.id, release_year=1996)
    )
    category = await CategoryRepository(session).add(Category(name="Vinyl"))
    return {"artist": artist, "album": album, "category": category}


@pytest.fixture
def product_factory(
    session: AsyncSession, catalog: dict[str, Any]
) -> Callable[..., Awaitable[Product]]:
    repo = ProductRepository(session)
    counter = {"n": 0}

    async def _create(provider: Provider, **fields: Any) -> Product:
        counter["n"] += 1
        assert provider.id is not None
        product = Product(
            album_id=catalog["album"].id,
            provider_id=provider.id,
            category_id=catalog["category"].id,
            sku=fields.pop("sku", f"SKU-{counter['n']:04d}"),
            product_type=fields.pop("product_type", ProductType.PHYSICAL),
            price=fields.pop("price", Decimal("25.00")),
            stock_quantity=fields.pop("stock_quantity", 10),
            **fields,
        )
        return await repo.add(product)

    return _create


# =============================================================================
# API CLIENT
# =============================================================================


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """TestClient with lifespan (tables are created on startup)."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


SeedUser = Callable[..., int]
Login = Callable[..., dict[str, str]]


@pytest.fixture
def seed_user(client: TestClient) -> SeedUser:
    """Insert users straight into the app database; the callable returns the id.

    Runs on the TestClient's event loop so it shares the in-memory connection.
    """
    db: Database = client.app.state.db  # type: ignore[attr-defined]
    hasher = PasswordHasher(TEST_HASH_ITERATIONS)

    def _seed(
        username: str,
        role: UserRole = UserRole.CUSTOMER,
        business_name: str | None = None,
    ) -> int:
        async def _insert() -> int:
            async with db.session_scope() as s:
                user = await UserRepository(s).add(
                    User(
                        username=username,
                        email=f"{username}@example.com",
                        first_name=username.title(),
                        last_name="Tester",
                        password_hash=hasher.hash(TEST_PASSWORD),
                        role=role,
                    )
                )
                assert user.id is not None
                if business_name is not None:
                    await ProviderRepository(s).add(
                        Provider(user_id=user.id, business_name=business_name)
                    )
                return user.id

        return client.portal.call(_insert)  # type: ignore[union-attr]

    return _seed


@pytest.fixture
def login(client: TestClient) -> Login:
    """Log in; the callable returns the Authorization header for the new session."""

    def _login(username: str, password: str = TEST_PASSWORD) -> dict[str, str]:
        response = client.post(
            "/api/auth/login", json={"username_or_email": username, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['session_token']}"}

    return _login


@pytest.fixture
def admin_headers(seed_user: SeedUser, login: Login) -> dict[str, str]:
    seed_user("admin", UserRole.ADMIN)
    return login("admin")
