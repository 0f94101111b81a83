"""
Pytest configuration and fixtures.

Provides an in-memory test database, a fixed clock and ledger fixtures.
"""

import pytest
from datetime import date, datetime
from uuid import uuid4
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.clock import FixedClock
from backoffice.config import settings
from backoffice.database import Base
from backoffice.models import (
    Account, AccountStatus, AccountValuation, Client, ComplianceTask, Document, DocumentStatus,
    KycStatus, Position, Security, TaskPriority, TaskStatus, TaskType, Trade, TradeType,
    User, UserRole, compute_net_amount
)
from backoffice.services.ledger import Ledger


# Test database URL (in-memory, shared by every connection of the engine)
TEST_DATABASE_URL = "sqlite://"

TODAY = date(2024, 6, 30)


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    """Signing key for bearer tokens; the deployment supplies JWT_SECRET_KEY."""
    monkeypatch.setattr(settings, "jwt_secret_key", "test-signing-key-0123456789abcdef")


@pytest.fixture(scope="function")
def db_engine():
    """Create test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Provide a clean database session for each test."""
    Session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = Session()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def clock():
    """Clock frozen at noon UTC on TODAY."""
    return FixedClock(datetime(TODAY.year, TODAY.month, TODAY.day, 12, 0, 0))


@pytest.fixture
def ledger(db_session):
    """Unbounded ledger over the test session."""
    return Ledger(db_session)


@pytest.fixture
def sample_user(db_session):
    user = User(
        username="ops@example.com",
        email="ops@example.com",
        display_name="Back Office Ops",
        role=UserRole.OPERATOR
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def sample_client(db_session):
    """Approved client reviewed three months before TODAY."""
    client = Client(
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        kyc_status=KycStatus.APPROVED,
        updated_at=datetime(2024, 3, 31, 9, 0, 0)
    )
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture
def sample_account(db_session, sample_client):
    account = Account(
        client_id=sample_client.id,
        account_number="CH-0001",
        base_currency="CHF",
        status=AccountStatus.ACTIVE
    )
    db_session.add(account)
    db_session.commit()
    return account


@pytest.fixture
def add_security(db_session):
    """Factory for securities."""
    def _add(symbol, sector="Technology"):
        security = Security(symbol=symbol, name=f"{symbol} Holdings", sector=sector, currency="CHF")
        db_session.add(security)
        db_session.commit()
        return security
    return _add


@pytest.fixture
def add_position(db_session, add_security):
    """Factory for positions (creates the security)."""
    def _add(account, symbol, market_value, quantity=100.0, average_cost=0.0, sector="Technology"):
        security = add_security(symbol, sector=sector)
        position = Position(
            account_id=account.id,
            security_id=security.id,
            quantity=quantity,
            average_cost=average_cost,
            market_value=market_value
        )
        db_session.add(position)
        db_session.commit()
        return position
    return _add


@pytest.fixture
def add_trade(db_session):
    """Factory for buy trades with commission and fees."""
    def _add(account, trade_date, commission=0.0, fees=0.0, gross_amount=1000.0):
        trade = Trade(
            account_id=account.id,
            trade_date=trade_date,
            trade_type=TradeType.BUY,
            quantity=10,
            price=gross_amount / 10,
            gross_amount=gross_amount,
            commission=commission,
            fees=fees,
            net_amount=compute_net_amount(TradeType.BUY, gross_amount, commission, fees),
            currency=account.base_currency
        )
        db_session.add(trade)
        db_session.commit()
        return trade
    return _add


@pytest.fixture
def add_valuation(db_session):
    def _add(account, valuation_date, total_value):
        valuation = AccountValuation(
            account_id=account.id,
            valuation_date=valuation_date,
            total_value=total_value
        )
        db_session.add(valuation)
        db_session.commit()
        return valuation
    return _add


@pytest.fixture
def add_document(db_session):
    def _add(title, expiry_date, status=DocumentStatus.APPROVED, client_id=None, account_id=None):
        document = Document(
            title=title,
            category="identity",
            status=status,
            expiry_date=expiry_date,
            client_id=client_id,
            account_id=account_id
        )
        db_session.add(document)
        db_session.commit()
        return document
    return _add


@pytest.fixture
def add_task(db_session):
    def _add(title, due_date, status=TaskStatus.PENDING, assigned_to=None, task_type=TaskType.OTHER):
        task = ComplianceTask(
            id=uuid4(),
            title=title,
            description=title,
            task_type=task_type,
            priority=TaskPriority.MEDIUM,
            status=status,
            due_date=due_date,
            assigned_to=assigned_to,
            created_by="seed"
        )
        db_session.add(task)
        db_session.commit()
        return task
    return _add
