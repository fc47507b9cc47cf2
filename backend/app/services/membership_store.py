"""
Membership store: (user, company) associations in `company_members`.

Insertion is insert-if-absent at the database level (ON CONFLICT DO NOTHING
against `uq_company_members_user_company`), so two concurrent joins for the
same pair cannot both create a row. The loser of such a race is reported as
`conflict_ignored` and gets the winner's row back.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Set, Tuple
from uuid import UUID, uuid4
import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..models.company import Company, name_key
from ..models.company_member import CompanyMember
from ..models.profile import Profile
from .company_store import CompanyStore
from .results import Deadline, ErrorKind, Result, store_call

logger = logging.getLogger(__name__)

UNIQUE_PAIR_CONSTRAINT = "uq_company_members_user_company"


def profile_references_company(value: str | None, company_id: UUID, company_name: str | None) -> bool:
    """True when a profile's company field names this company by id or by name."""
    key = name_key(value)
    if not key:
        return False
    return key == str(company_id) or key == name_key(company_name)


@dataclass
class MembershipWrite:
    member: CompanyMember
    created: bool
    conflict_ignored: bool = False


class MembershipStore:
    def __init__(
        self,
        db: Session,
        companies: CompanyStore | None = None,
        default_job_title: str | None = None,
    ) -> None:
        self.db = db
        self.companies = companies or CompanyStore(db)
        self.default_job_title = default_job_title or get_settings().DEFAULT_MEMBER_JOB_TITLE

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_member(
        self, user_id: UUID, company_id: UUID, *, deadline: Deadline | None = None
    ) -> Result[CompanyMember | None]:
        return store_call(
            self.db,
            lambda: (
                self.db.query(CompanyMember)
                .filter(
                    CompanyMember.user_id == user_id,
                    CompanyMember.company_id == company_id,
                )
                .order_by(CompanyMember.joined_at.asc(), CompanyMember.id.asc())
                .first()
            ),
            step="membership_store.get_member",
            deadline=deadline,
        )

    def get_profile(self, user_id: UUID, *, deadline: Deadline | None = None) -> Result[Profile | None]:
        return store_call(
            self.db,
            lambda: self.db.query(Profile).filter(Profile.id == user_id).first(),
            step="membership_store.get_profile",
            deadline=deadline,
        )

    def list_company_members(
        self, company_id: UUID, *, deadline: Deadline | None = None
    ) -> Result[List[Tuple[CompanyMember, Profile | None]]]:
        return store_call(
            self.db,
            lambda: [
                (member, profile)
                for member, profile in self.db.query(CompanyMember, Profile)
                .outerjoin(Profile, Profile.id == CompanyMember.user_id)
                .filter(CompanyMember.company_id == company_id)
                .order_by(CompanyMember.joined_at.asc(), CompanyMember.id.asc())
                .all()
            ],
            step="membership_store.list_company_members",
            deadline=deadline,
        )

    def get_user_companies(
        self, user_id: UUID, *, deadline: Deadline | None = None
    ) -> Result[List[Tuple[CompanyMember, Company]]]:
        return store_call(
            self.db,
            lambda: [
                (member, company)
                for member, company in self.db.query(CompanyMember, Company)
                .join(Company, Company.id == CompanyMember.company_id)
                .filter(CompanyMember.user_id == user_id)
                .order_by(CompanyMember.joined_at.asc(), CompanyMember.id.asc())
                .all()
            ],
            step="membership_store.get_user_companies",
            deadline=deadline,
        )

    def member_pairs(self, *, deadline: Deadline | None = None) -> Result[Set[Tuple[UUID, UUID]]]:
        """Every existing (user_id, company_id) pair."""
        return store_call(
            self.db,
            lambda: {
                (row.user_id, row.company_id)
                for row in self.db.query(CompanyMember.user_id, CompanyMember.company_id).all()
            },
            step="membership_store.member_pairs",
            deadline=deadline,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _insert_if_absent(self, values: dict) -> bool:
        dialect = self.db.get_bind().dialect.name

        if dialect == "postgresql":
            stmt = pg_insert(CompanyMember).values(**values).on_conflict_do_nothing(
                constraint=UNIQUE_PAIR_CONSTRAINT
            )
            return self.db.execute(stmt).rowcount == 1
        if dialect == "sqlite":
            stmt = sqlite_insert(CompanyMember).values(**values).on_conflict_do_nothing(
                index_elements=["user_id", "company_id"]
            )
            return self.db.execute(stmt).rowcount == 1

        try:
            with self.db.begin_nested():
                self.db.add(CompanyMember(**values))
                self.db.flush()
        except IntegrityError:
            return False
        return True

    def insert_if_absent(
        self,
        user_id: UUID,
        company_id: UUID,
        job_title: str | None,
        department: str | None = None,
        *,
        commit: bool = True,
        deadline: Deadline | None = None,
    ) -> Result[bool]:
        """
        Insert the membership unless the pair already exists.

        Returns True when this call created the row.
        """
        values = {
            "id": uuid4(),
            "user_id": user_id,
            "company_id": company_id,
            "job_title": (job_title or "").strip() or self.default_job_title,
            "department": department,
            "joined_at": datetime.utcnow(),
        }

        def _insert() -> bool:
            inserted = self._insert_if_absent(values)
            if commit:
                self.db.commit()
            return inserted

        result = store_call(self.db, _insert, step="membership_store.insert", deadline=deadline)
        if result.ok and not result.value:
            logger.info(
                "Membership already present; insert ignored",
                extra={"user_id": str(user_id), "company_id": str(company_id), "step": "member_insert"},
            )
        return result

    def add_member(
        self,
        user_id: UUID,
        company_id: UUID,
        job_title: str | None,
        department: str | None = None,
        *,
        deadline: Deadline | None = None,
    ) -> Result[MembershipWrite]:
        """
        Add a user to a company.

        An existing membership is returned untouched. A new one is inserted and,
        in the same transaction, the profile's company field is pointed at the
        canonical company id.
        """
        existing = self.get_member(user_id, company_id, deadline=deadline)
        if not existing.ok:
            return existing.cast()
        if existing.value is not None:
            return Result.success(MembershipWrite(member=existing.value, created=False))

        company = self.companies.get(company_id, deadline=deadline)
        if not company.ok:
            return company.cast()
        if company.value is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"company {company_id} not found")

        profile = self.get_profile(user_id, deadline=deadline)
        if not profile.ok:
            return profile.cast()
        if profile.value is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"profile {user_id} not found")

        inserted = self.insert_if_absent(
            user_id, company_id, job_title, department, commit=False, deadline=deadline
        )
        if not inserted.ok:
            return inserted.cast()

        canonical = str(company_id)

        def _finish() -> CompanyMember:
            if inserted.value and profile.value.company != canonical:
                profile.value.company = canonical
            self.db.commit()
            return (
                self.db.query(CompanyMember)
                .filter(
                    CompanyMember.user_id == user_id,
                    CompanyMember.company_id == company_id,
                )
                .order_by(CompanyMember.joined_at.asc(), CompanyMember.id.asc())
                .one()
            )

        member = store_call(self.db, _finish, step="membership_store.add_member", deadline=deadline)
        if not member.ok:
            return member.cast()

        logger.info(
            "Company member added" if inserted.value else "Concurrent membership insert ignored",
            extra={"user_id": str(user_id), "company_id": canonical, "step": "add_member"},
        )
        return Result.success(
            MembershipWrite(
                member=member.value,
                created=inserted.value,
                conflict_ignored=not inserted.value,
            )
        )

    def is_member(
        self, user_id: UUID, company_id: UUID, *, deadline: Deadline | None = None
    ) -> Result[bool]:
        """
        Membership check with a self-healing fallback.

        Without a row, a profile whose company field names this company (by id
        or case-insensitive name) is added as a member and counts as one, so the
        next call is answered from the membership table alone.
        """
        existing = self.get_member(user_id, company_id, deadline=deadline)
        if not existing.ok:
            return existing.cast()
        if existing.value is not None:
            return Result.success(True)

        profile = self.get_profile(user_id, deadline=deadline)
        if not profile.ok:
            return profile.cast()
        if profile.value is None or not profile.value.company:
            return Result.success(False)

        company = self.companies.get(company_id, deadline=deadline)
        if not company.ok:
            return company.cast()
        if company.value is None:
            return Result.success(False)

        if not profile_references_company(profile.value.company, company_id, company.value.name):
            return Result.success(False)

        logger.info(
            "Profile references company without membership; adding",
            extra={"user_id": str(user_id), "company_id": str(company_id), "step": "is_member_heal"},
        )
        added = self.add_member(
            user_id,
            company_id,
            profile.value.job_title,
            profile.value.department,
            deadline=deadline,
        )
        if not added.ok:
            return added.cast()
        return Result.success(True)
