"""
Company resolution.

Turns whatever a user typed into a company field (a canonical company id, or a
company name in any casing) into a canonical company id, creating the company
on first sight of an unknown name.

The id-or-name field has no discriminator in storage, so the heuristic is:
shape matches a company id AND that company exists -> id; otherwise -> name.
An id-shaped value that matches nothing is therefore treated as a name.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.company import name_key
from .company_store import CompanyStore
from .results import Deadline, ErrorKind, Result, store_call

logger = logging.getLogger(__name__)

COMPANY_ID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def parse_company_id(value: str | None) -> UUID | None:
    """Return the UUID when `value` has the canonical id shape, else None."""
    if not value:
        return None
    candidate = value.strip()
    if not COMPANY_ID_RE.match(candidate):
        return None
    return UUID(candidate)


class CompanyIndex:
    """
    In-memory id and name lookup over all companies.

    Built once per sweep so resolving thousands of profiles does not cost a
    store round trip each. Names map to the oldest company carrying them.
    """

    def __init__(self) -> None:
        self._ids: set[UUID] = set()
        self._by_name: Dict[str, UUID] = {}

    @classmethod
    def build(cls, store: CompanyStore, *, deadline: Deadline | None = None) -> Result["CompanyIndex"]:
        rows = store.name_index_rows(deadline=deadline)
        if not rows.ok:
            return rows.cast()
        index = cls()
        for company_id, name in rows.value:
            index.add(company_id, name)
        return Result.success(index)

    def add(self, company_id: UUID, name: str) -> None:
        self._ids.add(company_id)
        self._by_name.setdefault(name_key(name), company_id)

    def lookup(self, raw: str) -> UUID | None:
        candidate = parse_company_id(raw)
        if candidate is not None and candidate in self._ids:
            return candidate
        return self._by_name.get(name_key(raw))

    def __len__(self) -> int:
        return len(self._ids)


class CompanyResolver:
    def __init__(self, db: Session, store: CompanyStore | None = None) -> None:
        self.db = db
        self.store = store or CompanyStore(db)

    def resolve_or_create(self, raw: str | None, *, deadline: Deadline | None = None) -> Result[UUID]:
        name = (raw or "").strip()
        if not name:
            return Result.failure(ErrorKind.INVALID_INPUT, "company must not be empty")

        candidate = parse_company_id(name)
        if candidate is not None:
            found = self.store.get(candidate, deadline=deadline)
            if not found.ok:
                return found.cast()
            if found.value is not None:
                return Result.success(found.value.id)
            logger.info(
                "Id-shaped company value matches no company; resolving as a name",
                extra={"company_id": name, "step": "resolve_company"},
            )

        existing = self.store.find_by_name(name, deadline=deadline)
        if not existing.ok:
            return existing.cast()
        if existing.value is not None:
            return Result.success(existing.value.id)

        created = self.store.create(name, deadline=deadline)
        if not created.ok:
            return created.cast()
        return Result.success(created.value.id)

    def ensure_seed_companies(
        self,
        entries: Iterable[Mapping[str, Any]],
        *,
        deadline: Deadline | None = None,
    ) -> Result[int]:
        """
        Create every listed company not already present (case-insensitive).

        Returns how many were created. Re-running with the same list writes
        nothing.
        """
        index = CompanyIndex.build(self.store, deadline=deadline)
        if not index.ok:
            return index.cast()

        created = 0
        for entry in entries:
            name = (entry.get("name") or "").strip()
            if not name or index.value.lookup(name) is not None:
                continue
            row = self.store.create(
                name,
                sector=entry.get("sector"),
                commit=False,
                deadline=deadline,
            )
            if not row.ok:
                self.db.rollback()
                return row.cast()
            index.value.add(row.value.id, row.value.name)
            created += 1

        if created:
            committed = store_call(
                self.db, self.db.commit, step="seed_companies.commit", deadline=deadline
            )
            if not committed.ok:
                return committed.cast()

        logger.info(
            "Seed companies ensured",
            extra={"step": "seed_companies", "companies_created": created},
        )
        return Result.success(created)
