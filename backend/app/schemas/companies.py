# backend/app/schemas/companies.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, field_validator, ConfigDict

MAX_COMPANY_NAME_LEN = 200
MAX_JOB_TITLE_LEN = 200
MAX_DEPARTMENT_LEN = 200
MAX_SECTOR_LEN = 100


def _blank_to_none(v):
    if v is None:
        return None
    if isinstance(v, str):
        stripped = v.strip()
        return stripped or None
    return v


class ResolveCompanyRequest(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        if len(v) > MAX_COMPANY_NAME_LEN:
            raise ValueError(f"name must be at most {MAX_COMPANY_NAME_LEN} characters")
        return v


class ResolveCompanyOut(BaseModel):
    company_id: UUID


class AddMemberRequest(BaseModel):
    user_id: UUID
    job_title: str | None = None
    department: str | None = None

    @field_validator("job_title", "department", mode="before")
    @classmethod
    def _strip(cls, v):
        return _blank_to_none(v)

    @field_validator("job_title")
    @classmethod
    def validate_job_title(cls, v: str | None) -> str | None:
        if v is not None and len(v) > MAX_JOB_TITLE_LEN:
            raise ValueError(f"job_title must be at most {MAX_JOB_TITLE_LEN} characters")
        return v

    @field_validator("department")
    @classmethod
    def validate_department(cls, v: str | None) -> str | None:
        if v is not None and len(v) > MAX_DEPARTMENT_LEN:
            raise ValueError(f"department must be at most {MAX_DEPARTMENT_LEN} characters")
        return v


class JoinCompanyRequest(AddMemberRequest):
    company: str

    @field_validator("company")
    @classmethod
    def validate_company(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("company must not be empty")
        if len(v) > MAX_COMPANY_NAME_LEN:
            raise ValueError(f"company must be at most {MAX_COMPANY_NAME_LEN} characters")
        return v


class SeedCompany(BaseModel):
    name: str
    sector: str | None = None

    @field_validator("sector", mode="before")
    @classmethod
    def _strip_sector(cls, v):
        return _blank_to_none(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        if len(v) > MAX_COMPANY_NAME_LEN:
            raise ValueError(f"name must be at most {MAX_COMPANY_NAME_LEN} characters")
        return v


class SeedCompaniesRequest(BaseModel):
    # None -> the built-in reference list
    companies: list[SeedCompany] | None = None


class SeedCompaniesOut(BaseModel):
    created: int


class CompanyOut(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    sector: str | None = None
    location: str | None = None
    website: str | None = None
    logo_url: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompanyMemberOut(BaseModel):
    id: UUID
    user_id: UUID
    company_id: UUID
    job_title: str
    department: str | None = None
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MembershipWriteOut(BaseModel):
    member: CompanyMemberOut
    created: bool
    conflict_ignored: bool = False

    model_config = ConfigDict(from_attributes=True)


class MemberViewOut(BaseModel):
    id: UUID | None = None
    user_id: UUID
    company_id: UUID
    job_title: str
    department: str | None = None
    joined_at: datetime | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    synthesized: bool = False

    model_config = ConfigDict(from_attributes=True)


class MembershipCheckOut(BaseModel):
    user_id: UUID
    company_id: UUID
    is_member: bool


class UserCompanyOut(BaseModel):
    member: CompanyMemberOut
    company: CompanyOut


class SyncReportOut(BaseModel):
    scanned: int
    skipped: int
    profiles_rewritten: int
    companies_created: int
    memberships_created: int
    failed: int
    cancelled: bool
    writes: int
