from __future__ import annotations

from typing import List, Tuple
from uuid import UUID
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..models.company import Company, name_key
from .results import Deadline, Result, store_call

logger = logging.getLogger(__name__)


class CompanyStore:
    """
    Persistence over canonical company rows.

    Every method is a single store round trip guarded by `store_call`.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, company_id: UUID, *, deadline: Deadline | None = None) -> Result[Company | None]:
        return store_call(
            self.db,
            lambda: self.db.query(Company).filter(Company.id == company_id).first(),
            step="company_store.get",
            deadline=deadline,
        )

    def find_by_name(self, name: str, *, deadline: Deadline | None = None) -> Result[Company | None]:
        """
        Case-insensitive name lookup.

        Legacy data may hold several rows for one name; the oldest wins so the
        answer is stable across calls.
        """
        key = name_key(name)
        return store_call(
            self.db,
            lambda: (
                self.db.query(Company)
                .filter(Company.name_key == key)
                .order_by(Company.created_at.asc(), Company.id.asc())
                .first()
            ),
            step="company_store.find_by_name",
            deadline=deadline,
        )

    def list_all(
        self,
        *,
        query: str | None = None,
        sector: str | None = None,
        deadline: Deadline | None = None,
    ) -> Result[List[Company]]:
        def _list() -> List[Company]:
            q = self.db.query(Company)
            if query and query.strip():
                q = q.filter(
                    or_(
                        Company.name_key.like(f"%{name_key(query)}%"),
                        func.lower(func.coalesce(Company.description, "")).like(f"%{query.strip().lower()}%"),
                    )
                )
            if sector and sector.strip() and sector.strip().lower() != "all":
                q = q.filter(func.lower(Company.sector) == sector.strip().lower())
            return q.order_by(Company.name.asc()).all()

        return store_call(self.db, _list, step="company_store.list_all", deadline=deadline)

    def name_index_rows(self, *, deadline: Deadline | None = None) -> Result[List[Tuple[UUID, str]]]:
        """(id, name) for every company, oldest first."""
        return store_call(
            self.db,
            lambda: [
                (row.id, row.name)
                for row in self.db.query(Company.id, Company.name)
                .order_by(Company.created_at.asc(), Company.id.asc())
                .all()
            ],
            step="company_store.name_index_rows",
            deadline=deadline,
        )

    def create(
        self,
        name: str,
        *,
        sector: str | None = None,
        commit: bool = True,
        deadline: Deadline | None = None,
    ) -> Result[Company]:
        """
        Insert a company with the trimmed display name.

        With `commit=False` the row is only flushed so the caller can commit it
        together with other writes.
        """
        def _create() -> Company:
            company = Company(name=name.strip(), sector=sector)
            self.db.add(company)
            if commit:
                self.db.commit()
                self.db.refresh(company)
            else:
                self.db.flush()
            return company

        result = store_call(self.db, _create, step="company_store.create", deadline=deadline)
        if result.ok:
            logger.info(
                "Company created",
                extra={"company_id": str(result.value.id), "step": "company_create"},
            )
        return result
