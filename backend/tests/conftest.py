"""
Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database. The app settings are pointed
at SQLite too so importing `app.*` never needs a running Postgres.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_COMPANIES_ON_STARTUP", "false")

from datetime import datetime
from typing import Callable, List

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base, get_db
from app.models.company import Company
from app.models.company_member import CompanyMember
from app.models.profile import Profile

WRITE_PREFIXES = ("INSERT", "UPDATE", "DELETE")


class StatementCounter:
    """Records every SQL statement sent to the engine."""

    def __init__(self) -> None:
        self.statements: List[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany) -> None:
        self.statements.append(statement)

    def reset(self) -> None:
        self.statements.clear()

    @property
    def writes(self) -> List[str]:
        return [s for s in self.statements if s.lstrip().upper().startswith(WRITE_PREFIXES)]

    def touching(self, table: str) -> List[str]:
        return [s for s in self.statements if table in s]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def statements(engine):
    counter = StatementCounter()
    event.listen(engine, "before_cursor_execute", counter)
    yield counter
    event.remove(engine, "before_cursor_execute", counter)


@pytest.fixture
def make_company(db_session) -> Callable[..., Company]:
    def _make(name: str, *, sector: str | None = None, created_at: datetime | None = None, **attrs) -> Company:
        company = Company(name=name, sector=sector, **attrs)
        if created_at is not None:
            company.created_at = created_at
        db_session.add(company)
        db_session.commit()
        db_session.refresh(company)
        return company

    return _make


@pytest.fixture
def make_profile(db_session) -> Callable[..., Profile]:
    def _make(
        company: str | None = None,
        *,
        first_name: str = "Test",
        last_name: str = "User",
        email: str | None = None,
        job_title: str | None = None,
        department: str | None = None,
        created_at: datetime | None = None,
    ) -> Profile:
        profile = Profile(
            first_name=first_name,
            last_name=last_name,
            email=email,
            company=company,
            job_title=job_title,
            department=department,
        )
        if created_at is not None:
            profile.created_at = created_at
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def make_member(db_session) -> Callable[..., CompanyMember]:
    def _make(user_id, company_id, *, job_title: str = "Engineer", department: str | None = None) -> CompanyMember:
        member = CompanyMember(
            user_id=user_id,
            company_id=company_id,
            job_title=job_title,
            department=department,
        )
        db_session.add(member)
        db_session.commit()
        db_session.refresh(member)
        return member

    return _make


@pytest.fixture
def member_count(db_session) -> Callable[..., int]:
    def _count(user_id=None, company_id=None) -> int:
        q = db_session.query(CompanyMember)
        if user_id is not None:
            q = q.filter(CompanyMember.user_id == user_id)
        if company_id is not None:
            q = q.filter(CompanyMember.company_id == company_id)
        return q.count()

    return _count


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient
    from app.main import app

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    # No context manager: the startup seed hook is not run against the app engine
    yield TestClient(app)
    app.dependency_overrides.clear()
