from sqlalchemy import Column, String, Text, DateTime, Uuid
from sqlalchemy.orm import validates
from datetime import datetime
import unicodedata
import uuid
from ..core.db import Base


def name_key(name: str | None) -> str:
    """
    Comparison key for company names.

    NFKC + casefold, trimmed of any surrounding whitespace, so "Straße" and
    "STRASSE" share a key on every database.
    """
    return unicodedata.normalize("NFKC", name or "").strip().casefold()


class Company(Base):
    __tablename__ = "companies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Intended unique, enforced by the resolver rather than the database
    name = Column(String, nullable=False)
    # Kept in sync with `name`; all name lookups go through this column
    name_key = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    sector = Column(String, nullable=True)      # "Technology", "Finance", …
    location = Column(String, nullable=True)
    website = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @validates("name")
    def _set_name_key(self, _key, value):
        self.name_key = name_key(value)
        return value
