"""
CompanyMember model: the normalized (user, company) association.

The unique constraint on (user_id, company_id) is what lets the membership
store insert with ON CONFLICT DO NOTHING instead of check-then-insert.
"""
from datetime import datetime
import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint, Uuid

from ..core.db import Base


class CompanyMember(Base):
    __tablename__ = "company_members"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=False)
    job_title = Column(String, nullable=False)
    department = Column(String, nullable=True)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "company_id", name="uq_company_members_user_company"),
        Index("ix_company_members_company_id", "company_id"),
        Index("ix_company_members_user_id", "user_id"),
    )
