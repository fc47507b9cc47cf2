"""
Profile model.

Profiles are owned by the profile/auth subsystem. This backend reads them and
only ever rewrites the `company` column, which holds either a canonical
company id or whatever company name the user typed.
"""
from sqlalchemy import Column, String, DateTime, Uuid
from datetime import datetime
import uuid
from ..core.db import Base

class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    email = Column(String, nullable=True)
    company = Column(String, nullable=True)     # company id OR free-text name
    job_title = Column(String, nullable=True)
    department = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
