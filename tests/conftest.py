import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import shoppers.models  # noqa: F401
from shoppers.db.session import get_session
from shoppers.main import app
from shoppers.models.category import Category
from shoppers.models.product import Product, ProductVariant
from shoppers.models.user import User, UserRole
from shoppers.services.auth import AuthService


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(engine):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def make_user(session: Session, email: str, role: str = UserRole.USER.value, verified: bool = True) -> User:
    user = User(
        email=email,
        name=email.split("@")[0],
        password_hash=AuthService(session).get_password_hash("secret123"),
        role=role,
        is_verified=verified,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(session: Session, user: User) -> dict:
    return {"Authorization": f"Bearer {AuthService(session).create_access_token(user)}"}


@pytest.fixture
def user(session):
    return make_user(session, "shopper@example.com")


@pytest.fixture
def user_headers(session, user):
    return auth_headers(session, user)


@pytest.fixture
def admin(session):
    return make_user(session, "admin@example.com", role=UserRole.ADMIN.value)


@pytest.fixture
def admin_headers(session, admin):
    return auth_headers(session, admin)


@pytest.fixture
def categories(session):
    """Men > Topwear > T-Shirts, plus an unrelated Women top level."""
    men = Category(name="Men", slug="men", level=1)
    women = Category(name="Women", slug="women", level=1)
    session.add(men)
    session.add(women)
    session.commit()
    topwear = Category(name="Topwear", slug="men-topwear", level=2, parent_id=men.id)
    session.add(topwear)
    session.commit()
    tshirts = Category(name="T-Shirts", slug="men-topwear-t-shirts", level=3, parent_id=topwear.id)
    session.add(tshirts)
    session.commit()
    for c in (men, women, topwear, tshirts):
        session.refresh(c)
    return {"men": men, "women": women, "topwear": topwear, "tshirts": tshirts}


def make_product(session: Session, name: str, sku: str, price: float = 500.0, original_price: float = 800.0,
                 stock: int = 20, category_id=None, sub_category_id=None, sub_sub_category_id=None) -> Product:
    product = Product(
        name=name,
        slug=sku.lower(),
        brand="Acme",
        category_id=category_id,
        sub_category_id=sub_category_id,
        sub_sub_category_id=sub_sub_category_id,
    )
    product.variants.append(ProductVariant(
        sku=sku, color="Black", size="M", price=price, original_price=original_price, stock=stock,
    ))
    product.refresh_price()
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture
def product(session, categories):
    return make_product(
        session, "Classic Tee", "TEE-BLK-M",
        category_id=categories["men"].id,
        sub_category_id=categories["topwear"].id,
        sub_sub_category_id=categories["tshirts"].id,
    )
