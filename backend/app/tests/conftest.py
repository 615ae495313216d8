import os

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_DEMO"] = "false"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.roles import Role
from app.core.security import hash_password, issue_tokens
from app.main import app
from app.models import Base, Product, User
from app.services import shift_service


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _user(db, username, role, password, full_name):
    user = User(
        username=username,
        hashed_password=hash_password(password),
        full_name=full_name,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin(db):
    return _user(db, "admin", Role.admin.value, "admin-pass", "Administrador")


@pytest.fixture()
def cashier(db):
    return _user(db, "vendedor", Role.vendedor.value, "vendedor-pass", "Vendedor Demo")


@pytest.fixture()
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {issue_tokens(user.id)['access_token']}"}

    return _headers


@pytest.fixture()
def products(db):
    items = [
        Product(code="AGUA500", name="Agua 500ml", category="Bebida", price=Decimal("50.00"),
                cost=Decimal("30.00"), stock=10, min_stock=2),
        Product(code="ALF01", name="Alfajor", category="Comida", price=Decimal("75.00"),
                cost=Decimal("40.00"), stock=5, min_stock=5),
        Product(code="GRIP01", name="Grip Paleta", category="Artículos de Deporte", price=Decimal("120.00"),
                cost=Decimal("80.00"), stock=1, min_stock=0),
    ]
    db.add_all(items)
    db.commit()
    for p in items:
        db.refresh(p)
    return {p.code: p for p in items}


@pytest.fixture()
def open_shift(db, cashier):
    return shift_service.start_shift(db, cashier.id, cashier.full_name, Decimal("100.00"))
