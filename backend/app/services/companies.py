from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.company import Company
from ..models.company_member import CompanyMember
from .company_resolver import CompanyResolver
from .company_store import CompanyStore
from .member_aggregator import MemberAggregator, MemberView
from .membership_store import MembershipStore, MembershipWrite
from .reconciliation import ReconciliationSweep, SyncReport
from .results import Deadline, ErrorKind, Result
from .seed_data import TOP_COMPANIES


class CompanyService:
    """
    Public company/membership operations, wired per request around one session.

    Registration, profile edit and the join-company action go through
    `resolve_or_create_company` / `add_member` / `join_company`; the directory
    and roster pages go through `get_all_companies`, `get_company_members` and
    `sync_all`.
    """

    def __init__(self, db: Session, *, default_job_title: str | None = None) -> None:
        self.db = db
        self.companies = CompanyStore(db)
        self.resolver = CompanyResolver(db, self.companies)
        self.memberships = MembershipStore(
            db, companies=self.companies, default_job_title=default_job_title
        )
        self.aggregator = MemberAggregator(db, self.companies, self.memberships)
        self.sweep = ReconciliationSweep(db, self.companies, self.memberships)

    def resolve_or_create_company(self, name: str, *, deadline: Deadline | None = None) -> Result[UUID]:
        return self.resolver.resolve_or_create(name, deadline=deadline)

    def ensure_seed_companies(
        self,
        entries: Iterable[Mapping[str, Any]] | None = None,
        *,
        deadline: Deadline | None = None,
    ) -> Result[int]:
        return self.resolver.ensure_seed_companies(
            TOP_COMPANIES if entries is None else entries, deadline=deadline
        )

    def add_member(
        self,
        user_id: UUID,
        company_id: UUID,
        job_title: str | None,
        department: str | None = None,
        *,
        deadline: Deadline | None = None,
    ) -> Result[MembershipWrite]:
        return self.memberships.add_member(
            user_id, company_id, job_title, department, deadline=deadline
        )

    def join_company(
        self,
        user_id: UUID,
        company: str,
        job_title: str | None,
        department: str | None = None,
        *,
        deadline: Deadline | None = None,
    ) -> Result[MembershipWrite]:
        """Resolve a typed company (id or name) and add the user to it."""
        company_id = self.resolver.resolve_or_create(company, deadline=deadline)
        if not company_id.ok:
            return company_id.cast()
        return self.memberships.add_member(
            user_id, company_id.value, job_title, department, deadline=deadline
        )

    def is_member(self, user_id: UUID, company_id: UUID, *, deadline: Deadline | None = None) -> Result[bool]:
        return self.memberships.is_member(user_id, company_id, deadline=deadline)

    def get_all_companies(
        self,
        *,
        query: str | None = None,
        sector: str | None = None,
        deadline: Deadline | None = None,
    ) -> Result[List[Company]]:
        return self.companies.list_all(query=query, sector=sector, deadline=deadline)

    def get_company(self, company_id: UUID, *, deadline: Deadline | None = None) -> Result[Company]:
        found = self.companies.get(company_id, deadline=deadline)
        if found.ok and found.value is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"company {company_id} not found")
        return found

    def get_company_members(
        self, company_id: UUID, *, deadline: Deadline | None = None
    ) -> Result[List[MemberView]]:
        return self.aggregator.get_company_members(company_id, deadline=deadline)

    def get_user_companies(
        self, user_id: UUID, *, deadline: Deadline | None = None
    ) -> Result[List[Tuple[CompanyMember, Company]]]:
        return self.memberships.get_user_companies(user_id, deadline=deadline)

    def sync_all(self, *, deadline: Deadline | None = None) -> Result[SyncReport]:
        return self.sweep.sync_all(deadline=deadline)
