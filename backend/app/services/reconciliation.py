"""
Reconciliation sweep.

Walks every profile that carries a company reference, normalizes the reference
to a canonical company id (creating companies for unknown names), writes the id
back to the profile and backfills the missing membership row.

Each profile is committed on its own; a failing profile is rolled back, logged
and skipped. Running the sweep twice with no writes in between performs no
writes on the second run.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Set, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from ..core.celery_app import celery_app
from ..core.config import get_settings
from ..core.db import SessionLocal
from ..models.profile import Profile
from .company_resolver import CompanyIndex
from .company_store import CompanyStore
from .membership_store import MembershipStore
from .results import Deadline, ErrorKind, Result, store_call

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    scanned: int = 0
    skipped: int = 0
    profiles_rewritten: int = 0
    companies_created: int = 0
    memberships_created: int = 0
    failed: int = 0
    cancelled: bool = False

    @property
    def writes(self) -> int:
        return self.profiles_rewritten + self.companies_created + self.memberships_created

    def as_dict(self) -> Dict[str, Any]:
        return {**asdict(self), "writes": self.writes}


@dataclass
class _ProfileRef:
    id: UUID
    company: str | None
    job_title: str | None
    department: str | None


@dataclass
class _ProfileOutcome:
    rewritten: bool = False
    company_created: Tuple[UUID, str] | None = None
    membership_created: bool = False
    pair: Tuple[UUID, UUID] | None = None


class ReconciliationSweep:
    def __init__(
        self,
        db: Session,
        companies: CompanyStore | None = None,
        memberships: MembershipStore | None = None,
    ) -> None:
        self.db = db
        self.companies = companies or CompanyStore(db)
        self.memberships = memberships or MembershipStore(db, companies=self.companies)

    def _load_profiles(self, deadline: Deadline | None) -> Result[List[_ProfileRef]]:
        return store_call(
            self.db,
            lambda: [
                _ProfileRef(row.id, row.company, row.job_title, row.department)
                for row in self.db.query(
                    Profile.id, Profile.company, Profile.job_title, Profile.department
                )
                .filter(Profile.company.isnot(None))
                .order_by(Profile.created_at.asc(), Profile.id.asc())
                .all()
            ],
            step="sync.load_profiles",
            deadline=deadline,
        )

    def _sync_profile(
        self,
        profile: _ProfileRef,
        index: CompanyIndex,
        pairs: Set[Tuple[UUID, UUID]],
        deadline: Deadline | None,
    ) -> Result[_ProfileOutcome]:
        raw = profile.company.strip()
        outcome = _ProfileOutcome()

        company_id = index.lookup(raw)
        if company_id is None:
            created = self.companies.create(raw, commit=False, deadline=deadline)
            if not created.ok:
                return created.cast()
            company_id = created.value.id
            outcome.company_created = (company_id, created.value.name)

        canonical = str(company_id)
        if profile.company != canonical:
            updated = store_call(
                self.db,
                lambda: self.db.query(Profile)
                .filter(Profile.id == profile.id)
                .update({Profile.company: canonical}, synchronize_session=False),
                step="sync.rewrite_profile",
                deadline=deadline,
            )
            if not updated.ok:
                return updated.cast()
            outcome.rewritten = True

        pair = (profile.id, company_id)
        if pair not in pairs:
            inserted = self.memberships.insert_if_absent(
                profile.id,
                company_id,
                profile.job_title,
                profile.department,
                commit=False,
                deadline=deadline,
            )
            if not inserted.ok:
                return inserted.cast()
            outcome.membership_created = inserted.value
            outcome.pair = pair

        if outcome.rewritten or outcome.company_created or outcome.membership_created:
            committed = store_call(self.db, self.db.commit, step="sync.commit", deadline=deadline)
            if not committed.ok:
                return committed.cast()
        return Result.success(outcome)

    def sync_all(self, *, deadline: Deadline | None = None) -> Result[SyncReport]:
        profiles = self._load_profiles(deadline)
        if not profiles.ok:
            return profiles.cast()

        index = CompanyIndex.build(self.companies, deadline=deadline)
        if not index.ok:
            return index.cast()

        pairs = self.memberships.member_pairs(deadline=deadline)
        if not pairs.ok:
            return pairs.cast()

        logger.info(
            "Starting profile/membership sync",
            extra={"step": "sync_start", "profiles": len(profiles.value), "companies": len(index.value)},
        )

        report = SyncReport()
        for profile in profiles.value:
            if not (profile.company or "").strip():
                report.skipped += 1
                continue
            report.scanned += 1

            try:
                outcome = self._sync_profile(profile, index.value, pairs.value, deadline)
            except Exception:
                self.db.rollback()
                report.failed += 1
                logger.exception(
                    "Profile sync failed",
                    extra={"profile_id": str(profile.id), "step": "sync_profile"},
                )
                continue

            if not outcome.ok:
                self.db.rollback()
                if outcome.error == ErrorKind.CANCELLED:
                    report.cancelled = True
                    break
                report.failed += 1
                logger.warning(
                    "Profile sync skipped: %s",
                    outcome.detail or outcome.error.value,
                    extra={"profile_id": str(profile.id), "step": "sync_profile"},
                )
                continue

            # Only committed work is reflected in the per-sweep caches
            done = outcome.value
            if done.company_created:
                index.value.add(*done.company_created)
                report.companies_created += 1
            if done.pair:
                pairs.value.add(done.pair)
            if done.rewritten:
                report.profiles_rewritten += 1
            if done.membership_created:
                report.memberships_created += 1

        logger.info(
            "Profile/membership sync completed",
            extra={"step": "sync_done", **report.as_dict()},
        )
        return Result.success(report)


@celery_app.task(name="app.services.reconciliation.sync_all_profiles")
def sync_all_profiles() -> Dict[str, Any]:
    """
    Scheduled reconciliation (see beat_schedule in core.celery_app).
    """
    settings = get_settings()
    db: Session = SessionLocal()
    try:
        result = ReconciliationSweep(db).sync_all(
            deadline=Deadline.from_timeout(settings.SYNC_TIMEOUT_SECONDS)
        )
        if not result.ok:
            logger.error(
                "Scheduled sync failed: %s",
                result.detail or result.error.value,
                extra={"step": "sync_task"},
            )
            raise RuntimeError(f"Profile/membership sync failed ({result.error.value})")
        return result.value.as_dict()
    finally:
        db.close()
