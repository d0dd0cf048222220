from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from settleup.auth import create_access_token
from settleup.database import Base, get_db
from settleup.main import app
from settleup.models import (
    SETTLEMENT_COMPLETED,
    Expense,
    ExpenseSplit,
    Group,
    Settlement,
    User,
)

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


def headers_for(user_id: int) -> dict:
    token = create_access_token(data={"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return headers_for


@pytest.fixture
def users(db):
    """alice, bob and carol share a group; dave is an outsider."""
    created = {}
    for name in ("alice", "bob", "carol", "dave"):
        user = User(email=f"{name}@example.com", name=name.title())
        db.add(user)
        created[name] = user
    db.commit()
    return {name: u.id for name, u in created.items()}


@pytest.fixture
def group_id(db, users):
    group = Group(name="Trip", description="Weekend trip")
    group.members = db.query(User).filter(User.id.in_([users["alice"], users["bob"], users["carol"]])).all()
    db.add(group)
    db.commit()
    return group.id


@pytest.fixture
def add_expense(db):
    def _add(group_id: int, payer_id: int, shares: dict, description: str = "Dinner") -> int:
        expense = Expense(
            group_id=group_id,
            payer_id=payer_id,
            amount=sum((Decimal(str(v)) for v in shares.values()), Decimal("0")),
            description=description,
        )
        expense.splits = [ExpenseSplit(user_id=uid, amount=Decimal(str(amt))) for uid, amt in shares.items()]
        db.add(expense)
        db.commit()
        return expense.id

    return _add


@pytest.fixture
def add_settlement(db):
    def _add(group_id: int, from_user_id: int, to_user_id: int, amount, status: str = SETTLEMENT_COMPLETED) -> int:
        settlement = Settlement(
            group_id=group_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=Decimal(str(amount)),
            status=status,
            settled_at=datetime.now(timezone.utc),
        )
        db.add(settlement)
        db.commit()
        return settlement.id

    return _add
