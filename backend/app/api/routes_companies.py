from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..core.celery_app import celery_app
from ..core.config import get_settings
from ..schemas.companies import (
    AddMemberRequest,
    CompanyMemberOut,
    CompanyOut,
    JoinCompanyRequest,
    MemberViewOut,
    MembershipCheckOut,
    MembershipWriteOut,
    ResolveCompanyOut,
    ResolveCompanyRequest,
    SeedCompaniesOut,
    SeedCompaniesRequest,
    SyncReportOut,
    UserCompanyOut,
)
from ..services.companies import CompanyService
from ..services.results import Deadline, ErrorKind, Result

router = APIRouter(tags=["companies"])

settings = get_settings()
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.CANCELLED: 504,
}


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Simple header-based API key authentication.

    - In dev, if API_AUTH_KEY is not set, auth is skipped.
    - Otherwise, require X-API-Key == API_AUTH_KEY.
    """
    expected = settings.API_AUTH_KEY

    # In dev with no configured key, skip auth for convenience
    if settings.ENV == "dev" and not expected:
        return

    if not expected:
        # In non-dev environments, missing config is treated as misconfiguration
        raise HTTPException(status_code=401, detail="API key not configured")

    if api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_company_service(db: Session = Depends(get_db)) -> CompanyService:
    return CompanyService(db, default_job_title=settings.DEFAULT_MEMBER_JOB_TITLE)


def _deadline() -> Deadline | None:
    return Deadline.from_timeout(settings.STORE_CALL_TIMEOUT_SECONDS)


def _unwrap(result: Result):
    if result.ok:
        return result.value
    if result.error == ErrorKind.STORE_UNAVAILABLE:
        # Store details stay in the logs
        raise HTTPException(status_code=503, detail="Company store unavailable")
    raise HTTPException(
        status_code=ERROR_STATUS.get(result.error, 500),
        detail=result.detail or result.error.value,
    )


@router.get("/companies", response_model=list[CompanyOut])
def list_companies(
    q: str | None = None,
    sector: str | None = None,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    """
    Company directory, ordered by name, with optional name/description search
    and sector filter.
    """
    companies = _unwrap(service.get_all_companies(query=q, sector=sector, deadline=_deadline()))

    if settings.SYNC_ON_DIRECTORY_LOAD:
        try:
            celery_app.send_task(
                "app.services.reconciliation.sync_all_profiles",
                queue="maintenance",
            )
        except Exception:
            logger.exception("Failed to dispatch profile sync", extra={"step": "directory_sync"})

    return [CompanyOut.model_validate(c) for c in companies]


@router.post("/companies/resolve", response_model=ResolveCompanyOut)
def resolve_company(
    payload: ResolveCompanyRequest,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    company_id = _unwrap(service.resolve_or_create_company(payload.name, deadline=_deadline()))
    return ResolveCompanyOut(company_id=company_id)


@router.post("/companies/join", response_model=MembershipWriteOut)
def join_company(
    payload: JoinCompanyRequest,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    write = _unwrap(
        service.join_company(
            payload.user_id,
            payload.company,
            payload.job_title,
            payload.department,
            deadline=_deadline(),
        )
    )
    return MembershipWriteOut.model_validate(write)


@router.post("/companies/sync", response_model=SyncReportOut)
def sync_companies(
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    """
    Run the profile/membership reconciliation inline and report what changed.
    """
    report = _unwrap(
        service.sync_all(deadline=Deadline.from_timeout(settings.SYNC_TIMEOUT_SECONDS))
    )
    return SyncReportOut(**report.as_dict())


@router.post("/companies/seed", response_model=SeedCompaniesOut)
def seed_companies(
    payload: SeedCompaniesRequest | None = None,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    entries = None
    if payload is not None and payload.companies is not None:
        entries = [c.model_dump() for c in payload.companies]
    created = _unwrap(service.ensure_seed_companies(entries, deadline=_deadline()))
    return SeedCompaniesOut(created=created)


@router.get("/companies/{company_id}", response_model=CompanyOut)
def get_company(
    company_id: UUID,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    return CompanyOut.model_validate(_unwrap(service.get_company(company_id, deadline=_deadline())))


@router.get("/companies/{company_id}/members", response_model=list[MemberViewOut])
def list_company_members(
    company_id: UUID,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    """
    Company roster: membership rows plus profiles that name this company but
    were never added as members (those are added on the way).
    """
    members = _unwrap(service.get_company_members(company_id, deadline=_deadline()))
    return [MemberViewOut.model_validate(m) for m in members]


@router.post("/companies/{company_id}/members", response_model=MembershipWriteOut)
def add_company_member(
    company_id: UUID,
    payload: AddMemberRequest,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    write = _unwrap(
        service.add_member(
            payload.user_id,
            company_id,
            payload.job_title,
            payload.department,
            deadline=_deadline(),
        )
    )
    return MembershipWriteOut.model_validate(write)


@router.get("/companies/{company_id}/members/{user_id}", response_model=MembershipCheckOut)
def check_company_member(
    company_id: UUID,
    user_id: UUID,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    is_member = _unwrap(service.is_member(user_id, company_id, deadline=_deadline()))
    return MembershipCheckOut(user_id=user_id, company_id=company_id, is_member=is_member)


@router.get("/users/{user_id}/companies", response_model=list[UserCompanyOut])
def list_user_companies(
    user_id: UUID,
    service: CompanyService = Depends(get_company_service),
    _: None = Depends(verify_api_key),
):
    rows = _unwrap(service.get_user_companies(user_id, deadline=_deadline()))
    return [
        UserCompanyOut(
            member=CompanyMemberOut.model_validate(member),
            company=CompanyOut.model_validate(company),
        )
        for member, company in rows
    ]
