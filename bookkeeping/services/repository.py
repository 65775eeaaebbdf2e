"""
Journal entry persistence.

Every write goes through save() or delete(), and both rely on
the entry's version_id_col: the ORM emits
    UPDATE journal_entries ... WHERE id = :id AND version = :v
(or the equivalent DELETE) and raises StaleDataError when no row
matched. That single conditional statement is the compare-and-swap;
there is no separate read-then-write window for another request
to slip into.
"""

import logging
import math

from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from bookkeeping.errors import ConflictError, NotFoundError
from bookkeeping.models.journal_entry import JournalEntry, JournalLine
from bookkeeping.schemas.journal import JournalEntryFilter

logger = logging.getLogger(__name__)


class JournalEntryRepository:

    def __init__(self, db: Session):
        self.db = db

    def load(self, entry_id: int) -> JournalEntry:
        entry = self.db.execute(
            select(JournalEntry)
            .options(selectinload(JournalEntry.lines))
            .where(JournalEntry.id == entry_id)
        ).scalar_one_or_none()
        if entry is None:
            raise NotFoundError(f"Journal entry {entry_id} not found")
        return entry

    def add(self, entry: JournalEntry) -> JournalEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def save(self, entry: JournalEntry, expected_version: int) -> JournalEntry:
        """
        Persist pending changes to an entry loaded at expected_version.

        On success the entry's version has advanced by exactly one.
        The caller must roll back the session after a ConflictError.
        """
        self.check_version(entry, expected_version)
        try:
            self.db.flush()
        except StaleDataError as e:
            raise self._lost_race(entry.id, expected_version) from e
        return entry

    def delete(self, entry: JournalEntry, expected_version: int) -> None:
        self.check_version(entry, expected_version)
        self.db.delete(entry)
        try:
            self.db.flush()
        except StaleDataError as e:
            raise self._lost_race(entry.id, expected_version) from e

    def search(
        self,
        criteria: JournalEntryFilter,
        page: int,
        size: int,
    ) -> tuple[list[JournalEntry], int, int]:
        """
        Return (entries, total_elements, total_pages) for a 0-based page.

        Newest entry_date first; ties broken by id, newest first.
        """
        conditions = self._conditions(criteria)

        total = self.db.execute(
            select(func.count(JournalEntry.id)).where(*conditions)
        ).scalar_one()
        if total == 0:
            return [], 0, 0

        entries = self.db.execute(
            select(JournalEntry)
            .options(selectinload(JournalEntry.lines))
            .where(*conditions)
            .order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc())
            .offset(page * size)
            .limit(size)
        ).scalars().all()

        return list(entries), total, math.ceil(total / size)

    def check_version(self, entry: JournalEntry, expected_version: int) -> None:
        if entry.version != expected_version:
            logger.warning(
                "Version conflict on journal entry %s: expected %s, current %s",
                entry.id, expected_version, entry.version,
            )
            raise ConflictError(
                f"Journal entry {entry.id} has been modified "
                f"(expected version {expected_version}, "
                f"current version {entry.version}); reload and retry",
                expected_version=expected_version,
                actual_version=entry.version,
            )

    # --- Internals ---

    def _lost_race(self, entry_id: int, expected_version: int) -> ConflictError:
        logger.warning(
            "Concurrent write to journal entry %s at version %s",
            entry_id, expected_version,
        )
        return ConflictError(
            f"Journal entry {entry_id} was modified by another request; "
            f"reload and retry",
            expected_version=expected_version,
        )

    def _conditions(self, criteria: JournalEntryFilter) -> list:
        conditions = []
        if criteria.statuses:
            conditions.append(JournalEntry.status.in_(criteria.statuses))
        if criteria.date_from is not None:
            conditions.append(JournalEntry.entry_date >= criteria.date_from)
        if criteria.date_to is not None:
            conditions.append(JournalEntry.entry_date <= criteria.date_to)
        if criteria.description:
            conditions.append(
                JournalEntry.description.icontains(
                    criteria.description, autoescape=True
                )
            )
        if criteria.account_code:
            conditions.append(
                JournalEntry.lines.any(
                    JournalLine.account_code == criteria.account_code
                )
            )
        if criteria.amount_from is not None or criteria.amount_to is not None:
            total_debit = (
                select(func.coalesce(func.sum(JournalLine.debit_amount), 0))
                .where(JournalLine.entry_id == JournalEntry.id)
                .correlate(JournalEntry)
                .scalar_subquery()
            )
            if criteria.amount_from is not None:
                conditions.append(total_debit >= criteria.amount_from)
            if criteria.amount_to is not None:
                conditions.append(total_debit <= criteria.amount_to)
        return conditions
