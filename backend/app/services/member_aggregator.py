from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from ..models.company_member import CompanyMember
from ..models.profile import Profile
from .company_store import CompanyStore
from .membership_store import MembershipStore, profile_references_company
from .results import Deadline, ErrorKind, Result, store_call

logger = logging.getLogger(__name__)


@dataclass
class MemberView:
    id: UUID | None
    user_id: UUID
    company_id: UUID
    job_title: str
    department: str | None
    joined_at: datetime | None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    synthesized: bool = False


def _view_from_member(member: CompanyMember, profile: Profile | None) -> MemberView:
    return MemberView(
        id=member.id,
        user_id=member.user_id,
        company_id=member.company_id,
        job_title=member.job_title,
        department=member.department,
        joined_at=member.joined_at,
        first_name=profile.first_name if profile else None,
        last_name=profile.last_name if profile else None,
        email=profile.email if profile else None,
    )


class MemberAggregator:
    """
    Company roster read path.

    Merges explicit membership rows with profiles that point at the company
    but have no row yet, and writes the missing rows as it goes. A failed
    write-back does not change what is returned.
    """

    def __init__(
        self,
        db: Session,
        companies: CompanyStore | None = None,
        memberships: MembershipStore | None = None,
    ) -> None:
        self.db = db
        self.companies = companies or CompanyStore(db)
        self.memberships = memberships or MembershipStore(db, companies=self.companies)

    def _profiles_referencing(
        self, company_id: UUID, company_name: str, deadline: Deadline | None
    ) -> Result[List[Profile]]:
        # Same name key as is_member and the sweep
        return store_call(
            self.db,
            lambda: [
                profile
                for profile in self.db.query(Profile)
                .filter(Profile.company.isnot(None))
                .order_by(Profile.created_at.asc(), Profile.id.asc())
                .all()
                if profile_references_company(profile.company, company_id, company_name)
            ],
            step="aggregator.profiles_referencing",
            deadline=deadline,
        )

    def get_company_members(
        self, company_id: UUID, *, deadline: Deadline | None = None
    ) -> Result[List[MemberView]]:
        company = self.companies.get(company_id, deadline=deadline)
        if not company.ok:
            return company.cast()
        if company.value is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"company {company_id} not found")
        company_name = company.value.name

        explicit = self.memberships.list_company_members(company_id, deadline=deadline)
        if not explicit.ok:
            return explicit.cast()

        views: List[MemberView] = []
        seen: set[UUID] = set()
        for member, profile in explicit.value:
            if member.user_id in seen:
                continue
            seen.add(member.user_id)
            views.append(_view_from_member(member, profile))

        referencing = self._profiles_referencing(company_id, company_name, deadline)
        if not referencing.ok:
            return referencing.cast()

        # Views are built before any write: commits expire the loaded profiles
        missing: List[MemberView] = []
        for profile in referencing.value:
            if profile.id in seen:
                continue
            seen.add(profile.id)
            missing.append(
                MemberView(
                    id=None,
                    user_id=profile.id,
                    company_id=company_id,
                    job_title=(profile.job_title or "").strip() or self.memberships.default_job_title,
                    department=profile.department,
                    joined_at=profile.created_at,
                    first_name=profile.first_name,
                    last_name=profile.last_name,
                    email=profile.email,
                    synthesized=True,
                )
            )

        for view in missing:
            healed = self.memberships.insert_if_absent(
                view.user_id,
                company_id,
                view.job_title,
                view.department,
                deadline=deadline,
            )
            if healed.ok:
                row = self.memberships.get_member(view.user_id, company_id, deadline=deadline)
                if row.ok and row.value is not None:
                    view.id = row.value.id
                    view.joined_at = row.value.joined_at
            else:
                logger.warning(
                    "Could not persist roster membership: %s",
                    healed.detail or healed.error.value,
                    extra={"user_id": str(view.user_id), "company_id": str(company_id), "step": "roster_heal"},
                )
            views.append(view)

        if missing:
            logger.info(
                "Roster merged profiles without membership rows",
                extra={"company_id": str(company_id), "step": "roster_merge", "added": len(missing)},
            )
        return Result.success(views)
