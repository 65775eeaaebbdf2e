"""
Tests for the JournalEntryService.

Tests cover:
- Entry creation and line validation
- Draft editing and deletion
- Every workflow transition, with role and balance gating
- Optimistic locking, including a real two-session race
- Search, paging, and the audit trail
"""

import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from bookkeeping.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from bookkeeping.models.enums import (
    AccountType,
    AuditAction,
    EntryStatus,
    Role,
    WorkflowEvent,
)
from bookkeeping.models.journal_entry import JournalEntry, build_lines
from bookkeeping.models.workflow import TRANSITION_TABLE
from bookkeeping.schemas.journal import (
    JournalEntryCreate,
    JournalEntryFilter,
    JournalEntryUpdate,
    JournalLineCreate,
)
from bookkeeping.services.directories import AccountInfo, SqlAccountDirectory
from bookkeeping.services.journal_service import JournalEntryService


# --- Helpers to reduce repetition ---

def dr(code, amount):
    return JournalLineCreate(account_code=code, debit_amount=Decimal(amount))


def cr(code, amount):
    return JournalLineCreate(account_code=code, credit_amount=Decimal(amount))


def cash_sale(amount="1000"):
    return [dr("cash", amount), cr("sales", amount)]


def make_entry(
    service,
    actor="ulrich",
    lines=None,
    description="Cash sale",
    entry_date=date(2024, 3, 1),
):
    return service.create_entry(JournalEntryCreate(
        entry_date=entry_date,
        description=description,
        lines=cash_sale() if lines is None else lines,
    ), actor)


def advance_to(service, db_session, entry, status):
    """Drive a fresh draft to `status` along the happy path."""
    path = {
        EntryStatus.DRAFT: [],
        EntryStatus.PENDING: [WorkflowEvent.SUBMIT],
        EntryStatus.APPROVED: [WorkflowEvent.SUBMIT, WorkflowEvent.APPROVE],
        EntryStatus.CONFIRMED: [
            WorkflowEvent.SUBMIT, WorkflowEvent.APPROVE, WorkflowEvent.CONFIRM,
        ],
    }[status]
    db_session.commit()
    for event in path:
        service.apply_transition(entry.id, entry.version, event, "alice")
        db_session.commit()
    return service.get_entry(entry.id)


def snapshot(entry):
    """Everything a failed operation must leave untouched."""
    return {
        "status": entry.status,
        "version": entry.version,
        "entry_date": entry.entry_date,
        "description": entry.description,
        "approved_by": entry.approved_by,
        "confirmed_by": entry.confirmed_by,
        "rejected_reason": entry.rejected_reason,
        "updated_at": entry.updated_at,
        "lines": [
            (line.line_number, line.account_code, line.debit_amount, line.credit_amount)
            for line in entry.lines
        ],
    }


@pytest.fixture
def service(db_session, users, accounts):
    return JournalEntryService(db_session)


# --- Create Tests ---

class TestCreateEntry:

    def test_create_entry_starts_as_draft_at_version_1(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        assert entry.id is not None
        assert entry.status == EntryStatus.DRAFT
        assert entry.version == 1
        assert entry.created_by == "ulrich"
        assert [line.line_number for line in entry.lines] == [1, 2]
        assert entry.total_debit == Decimal("1000")
        assert entry.total_credit == Decimal("1000")

    def test_create_records_audit(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        trail = service.get_audit_trail(entry.id)
        assert [r.action for r in trail] == [AuditAction.CREATE]
        assert trail[0].actor == "ulrich"
        assert trail[0].from_status is None
        assert trail[0].to_status == EntryStatus.DRAFT

    def test_unbalanced_draft_is_accepted(self, service, db_session):
        entry = make_entry(service, lines=[dr("cash", "1000")])
        db_session.commit()

        assert entry.status == EntryStatus.DRAFT
        assert entry.imbalance == Decimal("1000")

    def test_description_is_trimmed(self, service):
        entry = make_entry(service, description="  Rent for March  ")
        assert entry.description == "Rent for March"

    @pytest.mark.parametrize("description", [None, "", "    "])
    def test_blank_description_rejected(self, service, description):
        with pytest.raises(ValidationError, match="description"):
            make_entry(service, description=description)

    def test_missing_date_rejected(self, service):
        with pytest.raises(ValidationError, match="entry_date"):
            make_entry(service, entry_date=None)

    def test_no_lines_rejected(self, service):
        with pytest.raises(ValidationError, match="at least one line"):
            make_entry(service, lines=[])

    def test_unknown_account_rejected(self, service):
        with pytest.raises(ValidationError, match="Line 2: account 'nope' not found"):
            make_entry(service, lines=[dr("cash", "10"), cr("nope", "10")])

    def test_inactive_account_rejected(self, service):
        with pytest.raises(ValidationError, match="'old-bank' is not active"):
            make_entry(service, lines=[dr("old-bank", "10"), cr("sales", "10")])

    def test_line_with_both_amounts_rejected(self, service):
        line = JournalLineCreate(
            account_code="cash",
            debit_amount=Decimal("10"),
            credit_amount=Decimal("10"),
        )
        with pytest.raises(ValidationError, match="exactly one"):
            make_entry(service, lines=[line])

    def test_line_with_no_amount_rejected(self, service):
        with pytest.raises(ValidationError, match="exactly one"):
            make_entry(service, lines=[JournalLineCreate(account_code="cash")])

    def test_validation_error_is_a_value_error(self, service):
        with pytest.raises(ValueError):
            make_entry(service, lines=[])

    def test_unknown_actor_forbidden(self, service):
        with pytest.raises(ForbiddenError):
            make_entry(service, actor="mallory")

    def test_inactive_actor_forbidden(self, service):
        with pytest.raises(ForbiddenError):
            make_entry(service, actor="olga")

    def test_failed_create_persists_nothing(self, service, db_session):
        with pytest.raises(ValidationError):
            make_entry(service, lines=[dr("nope", "5")])
        db_session.rollback()

        page = service.list_entries()
        assert page.total_elements == 0


# --- Update Tests ---

class TestUpdateEntry:

    def _update(self, entry, version=None, **changes):
        return JournalEntryUpdate(
            version=entry.version if version is None else version,
            entry_date=changes.get("entry_date", entry.entry_date),
            description=changes.get("description", entry.description),
            lines=changes.get("lines", cash_sale("1000")),
        )

    def test_update_replaces_header_and_lines(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        updated = service.update_entry(entry.id, self._update(
            entry,
            description="Cash sale, corrected",
            lines=[dr("cash", "1200"), cr("sales", "1000"), cr("rent", "200")],
        ), "ulrich")
        db_session.commit()

        assert updated.version == 2
        assert updated.description == "Cash sale, corrected"
        assert [line.account_code for line in updated.lines] == ["cash", "sales", "rent"]
        assert [line.line_number for line in updated.lines] == [1, 2, 3]
        assert updated.is_balanced

    def test_update_records_audit(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()
        service.update_entry(entry.id, self._update(entry, description="Edited"), "maria")
        db_session.commit()

        trail = service.get_audit_trail(entry.id)
        assert [r.action for r in trail] == [AuditAction.CREATE, AuditAction.UPDATE]
        assert trail[1].actor == "maria"

    def test_invalid_update_leaves_entry_unchanged(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()
        before = snapshot(service.get_entry(entry.id))

        with pytest.raises(ValidationError):
            service.update_entry(entry.id, self._update(
                entry,
                description="Should not stick",
                lines=[dr("cash", "5"), cr("old-bank", "5")],
            ), "ulrich")
        db_session.rollback()

        assert snapshot(service.get_entry(entry.id)) == before

    def test_update_of_pending_entry_rejected(self, service, db_session):
        entry = advance_to(service, db_session, make_entry(service), EntryStatus.PENDING)

        with pytest.raises(InvalidStateError, match="PENDING"):
            service.update_entry(entry.id, self._update(entry), "ulrich")

    def test_update_with_stale_version_conflicts(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()
        service.update_entry(entry.id, self._update(entry, version=1), "ulrich")
        db_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            service.update_entry(entry.id, self._update(entry, version=1), "ulrich")
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    def test_unknown_entry_not_found(self, service):
        request = JournalEntryUpdate(
            version=1,
            entry_date=date(2024, 3, 1),
            description="Ghost",
            lines=cash_sale(),
        )
        with pytest.raises(NotFoundError):
            service.update_entry(999, request, "ulrich")


# --- Delete Tests ---

class TestDeleteEntry:

    def test_delete_draft(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()
        entry_id = entry.id

        service.delete_entry(entry_id, 1, "ulrich")
        db_session.commit()

        with pytest.raises(NotFoundError):
            service.get_entry(entry_id)

    def test_audit_trail_outlives_deleted_draft(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()
        entry_id = entry.id
        service.delete_entry(entry_id, 1, "ulrich")
        db_session.commit()

        trail = service.get_audit_trail(entry_id)
        assert [r.action for r in trail] == [AuditAction.CREATE, AuditAction.DELETE]
        assert trail[1].from_status == EntryStatus.DRAFT
        assert trail[1].to_status is None

    @pytest.mark.parametrize("status", [
        EntryStatus.PENDING, EntryStatus.APPROVED, EntryStatus.CONFIRMED,
    ])
    def test_delete_past_draft_rejected(self, service, db_session, status):
        entry = advance_to(service, db_session, make_entry(service), status)

        with pytest.raises(InvalidStateError, match="only DRAFT"):
            service.delete_entry(entry.id, entry.version, "alice")

    def test_delete_with_stale_version_conflicts(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        with pytest.raises(ConflictError):
            service.delete_entry(entry.id, 7, "ulrich")
        db_session.rollback()

        assert service.get_entry(entry.id).version == 1


# --- Transition Tests ---

class TestTransitions:

    def test_submit_balanced_entry(self, service, db_session):
        entry = make_entry(service, lines=[dr("cash", "1000"), cr("sales", "1000")])
        db_session.commit()

        result = service.submit(entry.id, 1, "ulrich")
        db_session.commit()

        assert result.entry.status == EntryStatus.PENDING
        assert result.entry.version == 2
        assert result.audit.action == AuditAction.SUBMIT
        assert result.audit.from_status == EntryStatus.DRAFT
        assert result.audit.to_status == EntryStatus.PENDING

    def test_submit_debit_only_entry_fails(self, service, db_session):
        entry = make_entry(service, lines=[dr("cash", "1000")])
        db_session.commit()

        with pytest.raises(ValidationError, match="imbalance=1000"):
            service.submit(entry.id, 1, "ulrich")
        db_session.rollback()

        reloaded = service.get_entry(entry.id)
        assert reloaded.status == EntryStatus.DRAFT
        assert reloaded.version == 1

    def test_reject_with_reason_returns_to_draft(self, service, db_session):
        entry = advance_to(service, db_session, make_entry(service), EntryStatus.PENDING)

        result = service.reject(entry.id, entry.version, "maria", "amount error")
        db_session.commit()

        assert result.entry.status == EntryStatus.DRAFT
        assert result.entry.rejected_reason == "amount error"
        assert result.entry.rejected_by == "maria"
        assert result.entry.rejected_at is not None
        assert result.audit.details == "REJECT: amount error"

    def test_reject_without_reason_fails(self, service, db_session):
        entry = advance_to(service, db_session, make_entry(service), EntryStatus.PENDING)

        with pytest.raises(ValidationError, match="reason"):
            service.reject(entry.id, entry.version, "maria", "  ")

    def test_rejected_entry_can_be_fixed_and_resubmitted(self, service, db_session):
        entry = advance_to(service, db_session, make_entry(service), EntryStatus.PENDING)
        service.reject(entry.id, entry.version, "maria", "wrong amount")
        db_session.commit()

        service.update_entry(entry.id, JournalEntryUpdate(
            version=entry.version,
            entry_date=entry.entry_date,
            description=entry.description,
            lines=cash_sale("900"),
        ), "ulrich")
        db_session.commit()
        result = service.submit(entry.id, entry.version, "ulrich")
        db_session.commit()

        assert result.entry.status == EntryStatus.PENDING
        assert result.entry.total_debit == Decimal("900")
        assert result.entry.rejected_reason == "wrong amount"

    def test_approve_then_confirm(self, service, db_session):
        entry = advance_to(service, db_session, make_entry(service), EntryStatus.PENDING)

        approved = service.approve(entry.id, entry.version, "maria").entry
        db_session.commit()
        assert approved.status == EntryStatus.APPROVED
        assert approved.approved_by == "maria"
        assert approved.approved_at is not None

        confirmed = service.confirm(entry.id, approved.version, "alice").entry
        db_session.commit()
        assert confirmed.status == EntryStatus.CONFIRMED
        assert confirmed.confirmed_by == "alice"
        assert confirmed.version == 4

    def test_confirmed_entry_cannot_be_deleted(self, service, db_session):
        entry = advance_to(service, db_session, make_entry(service), EntryStatus.APPROVED)
        service.confirm(entry.id, entry.version, "alice")
        db_session.commit()

        with pytest.raises(InvalidStateError):
            service.delete_entry(entry.id, entry.version, "alice")

    def test_transition_alias(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        result = service.transition(entry.id, 1, WorkflowEvent.SUBMIT, "ulrich")
        assert result.entry.status == EntryStatus.PENDING

    def test_unknown_entry_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.submit(12345, 1, "ulrich")

    def test_unknown_actor_forbidden(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        with pytest.raises(ForbiddenError):
            service.submit(entry.id, 1, "mallory")

    @pytest.mark.parametrize("status", list(EntryStatus))
    @pytest.mark.parametrize("event", [
        WorkflowEvent.APPROVE, WorkflowEvent.REJECT, WorkflowEvent.CONFIRM,
    ])
    def test_user_role_forbidden_in_every_state(self, service, db_session, event, status):
        entry = advance_to(service, db_session, make_entry(service), status)
        before = snapshot(entry)

        with pytest.raises(ForbiddenError):
            service.apply_transition(entry.id, entry.version, event, "ulrich", "reason")
        db_session.rollback()

        assert snapshot(service.get_entry(entry.id)) == before

    @pytest.mark.parametrize("event,status", [
        (event, status)
        for event in WorkflowEvent
        for status in EntryStatus
        if (event, status) not in TRANSITION_TABLE
    ])
    def test_unlisted_transition_leaves_entry_unchanged(
        self, service, db_session, event, status
    ):
        entry = advance_to(service, db_session, make_entry(service), status)
        before = snapshot(entry)

        with pytest.raises(InvalidStateError):
            service.apply_transition(entry.id, entry.version, event, "alice", "reason")
        db_session.rollback()

        assert snapshot(service.get_entry(entry.id)) == before


class TestConfirmedIsFinal:

    @pytest.fixture
    def confirmed(self, service, db_session):
        return advance_to(service, db_session, make_entry(service), EntryStatus.CONFIRMED)

    def test_update_rejected(self, service, confirmed):
        with pytest.raises(InvalidStateError, match="CONFIRMED"):
            service.update_entry(confirmed.id, JournalEntryUpdate(
                version=confirmed.version,
                entry_date=confirmed.entry_date,
                description="Rewrite history",
                lines=cash_sale("1"),
            ), "alice")

    def test_delete_rejected(self, service, confirmed):
        with pytest.raises(InvalidStateError, match="CONFIRMED"):
            service.delete_entry(confirmed.id, confirmed.version, "alice")

    @pytest.mark.parametrize("event", list(WorkflowEvent))
    def test_every_transition_rejected(self, service, confirmed, event):
        with pytest.raises(InvalidStateError, match="CONFIRMED"):
            service.apply_transition(
                confirmed.id, confirmed.version, event, "alice", "reason"
            )


# --- Optimistic Locking Tests ---

class TestOptimisticLocking:

    def _edit(self, version, description):
        return JournalEntryUpdate(
            version=version,
            entry_date=date(2024, 3, 1),
            description=description,
            lines=cash_sale(),
        )

    def _entry_at_version_3(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()
        service.update_entry(entry.id, self._edit(1, "second"), "ulrich")
        db_session.commit()
        service.update_entry(entry.id, self._edit(2, "third"), "ulrich")
        db_session.commit()
        assert entry.version == 3
        return entry

    def test_second_writer_with_same_version_conflicts(self, service, db_session):
        entry = self._entry_at_version_3(service, db_session)

        first = service.update_entry(entry.id, self._edit(3, "first writer"), "ulrich")
        db_session.commit()
        assert first.version == 4

        with pytest.raises(ConflictError, match="reload"):
            service.update_entry(entry.id, self._edit(3, "second writer"), "maria")
        db_session.rollback()

        reloaded = service.get_entry(entry.id)
        assert reloaded.version == 4
        assert reloaded.description == "first writer"

    def test_race_between_two_sessions(self, service, db_session, session_factory):
        """
        Both requests hold version 3 in memory. The loser's
        version-conditioned UPDATE matches no row.
        """
        entry = self._entry_at_version_3(service, db_session)

        other_session = session_factory()
        other = JournalEntryService(other_session)
        assert other.get_entry(entry.id).version == 3

        service.update_entry(entry.id, self._edit(3, "winner"), "ulrich")
        db_session.commit()

        with pytest.raises(ConflictError):
            other.update_entry(entry.id, self._edit(3, "loser"), "maria")
        other_session.rollback()

        reloaded = service.get_entry(entry.id)
        assert reloaded.version == 4
        assert reloaded.description == "winner"

    def test_delete_racing_a_submit_conflicts(self, service, db_session, session_factory):
        entry = make_entry(service)
        db_session.commit()

        other_session = session_factory()
        other = JournalEntryService(other_session)
        assert other.get_entry(entry.id).version == 1

        service.submit(entry.id, 1, "ulrich")
        db_session.commit()

        with pytest.raises(ConflictError):
            other.delete_entry(entry.id, 1, "ulrich")
        other_session.rollback()

        assert service.get_entry(entry.id).status == EntryStatus.PENDING

    def test_stale_transition_fails_every_time(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()
        service.submit(entry.id, 1, "ulrich")
        db_session.commit()
        before = snapshot(service.get_entry(entry.id))

        for _ in range(2):
            with pytest.raises(ConflictError) as exc_info:
                service.approve(entry.id, 1, "maria")
            db_session.rollback()
            assert exc_info.value.actual_version == 2

        assert snapshot(service.get_entry(entry.id)) == before

    def test_version_checked_before_role(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        with pytest.raises(ConflictError):
            service.approve(entry.id, 9, "ulrich")

    def test_conflict_is_logged(self, service, db_session, caplog):
        entry = make_entry(service)
        db_session.commit()

        with caplog.at_level(logging.WARNING):
            with pytest.raises(ConflictError):
                service.submit(entry.id, 5, "ulrich")

        assert "Version conflict" in caplog.text


# --- Query Tests ---

class TestListEntries:

    @pytest.fixture
    def ledger(self, service, db_session):
        """Five entries with distinct dates, amounts and accounts."""
        specs = [
            (date(2024, 1, 10), "January rent", [dr("rent", "500"), cr("cash", "500")]),
            (date(2024, 2, 5), "Cash sale", cash_sale("100")),
            (date(2024, 2, 20), "Cash sale 100% markup", cash_sale("1000")),
            (date(2024, 3, 1), "CASH SALE", cash_sale("250")),
            (date(2024, 3, 15), "Half entry", [dr("cash", "75")]),
        ]
        entries = []
        for entry_date, description, lines in specs:
            entries.append(make_entry(
                service, entry_date=entry_date, description=description, lines=lines,
            ))
        db_session.commit()
        service.submit(entries[1].id, 1, "ulrich")
        db_session.commit()
        return entries

    def _ids(self, page):
        return [item.id for item in page.items]

    def test_newest_first(self, service, ledger):
        page = service.list_entries()
        assert self._ids(page) == [e.id for e in reversed(ledger)]
        assert page.total_elements == 5
        assert page.total_pages == 1
        assert page.size == 20

    def test_summary_carries_totals(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(statuses=[EntryStatus.PENDING]))
        assert len(page.items) == 1
        summary = page.items[0]
        assert summary.id == ledger[1].id
        assert summary.total_debit == Decimal("100")
        assert summary.total_credit == Decimal("100")
        assert summary.version == 2

    def test_status_filter(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(statuses=[EntryStatus.DRAFT]))
        assert ledger[1].id not in self._ids(page)
        assert page.total_elements == 4

    def test_date_range_is_inclusive(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(
            date_from=date(2024, 2, 5), date_to=date(2024, 3, 1),
        ))
        assert self._ids(page) == [ledger[3].id, ledger[2].id, ledger[1].id]

    def test_description_is_case_insensitive(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(description="cash sale"))
        assert set(self._ids(page)) == {ledger[1].id, ledger[2].id, ledger[3].id}

    def test_description_wildcards_are_literal(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(description="%"))
        assert self._ids(page) == [ledger[2].id]

    def test_account_filter_matches_any_line(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(account_code="rent"))
        assert self._ids(page) == [ledger[0].id]

    def test_amount_range_on_total_debit(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(
            amount_from=Decimal("200"), amount_to=Decimal("500"),
        ))
        assert set(self._ids(page)) == {ledger[0].id, ledger[3].id}

    def test_filters_combine(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(
            account_code="cash",
            statuses=[EntryStatus.DRAFT],
            amount_to=Decimal("100"),
        ))
        assert self._ids(page) == [ledger[4].id]

    def test_paging(self, service, ledger):
        first = service.list_entries(page=0, size=2)
        last = service.list_entries(page=2, size=2)

        assert first.total_pages == 3
        assert self._ids(first) == [ledger[4].id, ledger[3].id]
        assert self._ids(last) == [ledger[0].id]

    def test_page_past_the_end_is_empty(self, service, ledger):
        page = service.list_entries(page=9, size=2)
        assert page.items == []
        assert page.total_elements == 5

    def test_no_match(self, service, ledger):
        page = service.list_entries(JournalEntryFilter(description="payroll"))
        assert page.items == []
        assert page.total_pages == 0

    @pytest.mark.parametrize("criteria,page,size", [
        (None, -1, 10),
        (None, 0, 0),
        (None, 0, 101),
        (JournalEntryFilter(date_from=date(2024, 3, 1), date_to=date(2024, 2, 1)), 0, 10),
        (JournalEntryFilter(amount_from=Decimal("10"), amount_to=Decimal("1")), 0, 10),
    ])
    def test_invalid_query_rejected(self, service, criteria, page, size):
        with pytest.raises(ValidationError):
            service.list_entries(criteria, page=page, size=size)


class TestAuditTrail:

    def test_full_lifecycle(self, service, db_session):
        entry = advance_to(service, db_session, make_entry(service), EntryStatus.CONFIRMED)

        trail = service.get_audit_trail(entry.id)
        assert [r.action for r in trail] == [
            AuditAction.CREATE,
            AuditAction.SUBMIT,
            AuditAction.APPROVE,
            AuditAction.CONFIRM,
        ]
        assert [(r.from_status, r.to_status) for r in trail[1:]] == [
            (EntryStatus.DRAFT, EntryStatus.PENDING),
            (EntryStatus.PENDING, EntryStatus.APPROVED),
            (EntryStatus.APPROVED, EntryStatus.CONFIRMED),
        ]

    def test_failed_transition_leaves_no_audit(self, service, db_session):
        entry = make_entry(service, lines=[dr("cash", "1")])
        db_session.commit()

        with pytest.raises(ValidationError):
            service.submit(entry.id, 1, "ulrich")
        db_session.rollback()

        assert [r.action for r in service.get_audit_trail(entry.id)] == [AuditAction.CREATE]

    def test_unknown_entry_has_empty_trail(self, service):
        assert service.get_audit_trail(404) == []


# --- Aggregate Tests ---

class TestEntryAggregate:

    @pytest.fixture
    def directory(self, db_session, accounts):
        return SqlAccountDirectory(db_session)

    def _draft(self, directory):
        return JournalEntry.create(
            entry_date=date(2024, 5, 1),
            description="Office rent",
            lines=[dr("rent", "300"), cr("cash", "300")],
            created_by="ulrich",
            accounts=directory,
        )

    def test_replace_lines_renumbers(self, directory):
        entry = self._draft(directory)
        entry.replace_lines([cr("cash", "40"), dr("rent", "40")], directory)

        assert [(line.line_number, line.is_credit) for line in entry.lines] == [
            (1, True), (2, False),
        ]
        assert entry.is_balanced

    def test_update_header(self, directory):
        entry = self._draft(directory)
        entry.update_header(date(2024, 5, 2), " May rent ")

        assert entry.entry_date == date(2024, 5, 2)
        assert entry.description == "May rent"

    def test_pending_entry_refuses_edits(self, directory):
        entry = self._draft(directory)
        entry.status = EntryStatus.PENDING

        with pytest.raises(InvalidStateError):
            entry.replace_lines([dr("rent", "1"), cr("cash", "1")], directory)
        with pytest.raises(InvalidStateError):
            entry.update_header(date(2024, 5, 2), "Too late")

    def test_float_amount_refused(self, directory):
        line = JournalLineCreate.model_construct(
            account_code="cash", debit_amount=0.1, credit_amount=Decimal("0"),
        )
        with pytest.raises(ValidationError, match="float"):
            build_lines([line], directory)


# --- Lines-only Edit Tests ---

FROZEN = datetime(2024, 3, 1, 9, 30, 0)


class TestLinesOnlyEdit:
    """Edits that keep the header identical still go through the version check."""

    @pytest.fixture
    def frozen(self, db_session, users, accounts):
        return JournalEntryService(db_session, clock=lambda: FROZEN)

    def _same_header(self, version, amount):
        return JournalEntryUpdate(
            version=version,
            entry_date=date(2024, 3, 1),
            description="Cash sale",
            lines=cash_sale(amount),
        )

    def test_real_clock_bumps_version(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        updated = service.update_entry(entry.id, self._same_header(1, "750"), "ulrich")
        db_session.commit()

        assert updated.version == 2
        assert updated.total_debit == Decimal("750")

    def test_frozen_clock_bumps_version(self, frozen, db_session):
        entry = make_entry(frozen)
        db_session.commit()

        updated = frozen.update_entry(entry.id, self._same_header(1, "750"), "ulrich")
        db_session.commit()

        assert updated.version == 2
        assert updated.updated_at == FROZEN

    def test_identical_edit_still_counts(self, frozen, db_session):
        entry = make_entry(frozen)
        db_session.commit()

        updated = frozen.update_entry(entry.id, self._same_header(1, "1000"), "ulrich")
        db_session.commit()

        assert updated.version == 2

    def test_frozen_clock_stale_edit_conflicts(self, frozen, db_session):
        entry = make_entry(frozen)
        db_session.commit()
        frozen.update_entry(entry.id, self._same_header(1, "750"), "ulrich")
        db_session.commit()

        with pytest.raises(ConflictError):
            frozen.update_entry(entry.id, self._same_header(1, "500"), "maria")
        db_session.rollback()

        reloaded = frozen.get_entry(entry.id)
        assert reloaded.version == 2
        assert reloaded.total_debit == Decimal("750")

    def test_frozen_clock_race_between_sessions(self, frozen, db_session, session_factory):
        entry = make_entry(frozen)
        db_session.commit()

        other_session = session_factory()
        other = JournalEntryService(other_session, clock=lambda: FROZEN)
        assert other.get_entry(entry.id).version == 1

        frozen.update_entry(entry.id, self._same_header(1, "750"), "ulrich")
        db_session.commit()

        with pytest.raises(ConflictError):
            other.update_entry(entry.id, self._same_header(1, "500"), "maria")
        other_session.rollback()

        reloaded = frozen.get_entry(entry.id)
        assert reloaded.version == 2
        assert reloaded.total_debit == Decimal("750")

    def test_replace_lines_on_loaded_entry_bumps_version(self, frozen, db_session):
        entry = make_entry(frozen)
        db_session.commit()

        loaded = frozen.get_entry(entry.id)
        loaded.replace_lines(cash_sale("20"), SqlAccountDirectory(db_session), now=FROZEN)
        frozen.repository.save(loaded, 1)
        db_session.commit()

        assert loaded.version == 2


# --- Available Events Tests ---

class TestAvailableEvents:

    def test_clerk_on_draft(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        assert service.get_available_events(entry.id, "ulrich") == [WorkflowEvent.SUBMIT]

    def test_manager_on_pending(self, service, db_session):
        entry = advance_to(service, db_session, make_entry(service), EntryStatus.PENDING)

        assert service.get_available_events(entry.id, "maria") == [
            WorkflowEvent.APPROVE, WorkflowEvent.REJECT,
        ]
        assert service.get_available_events(entry.id, "ulrich") == []

    def test_unknown_actor_forbidden(self, service, db_session):
        entry = make_entry(service)
        db_session.commit()

        with pytest.raises(ForbiddenError):
            service.get_available_events(entry.id, "mallory")

    def test_unknown_entry_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.get_available_events(404, "ulrich")


# --- Directory Tests ---

class StaticAccounts:
    def __init__(self, accounts):
        self.accounts = accounts

    def lookup(self, code):
        return self.accounts.get(code)


class StaticUsers:
    def __init__(self, roles):
        self.roles = roles

    def role_of(self, user_id):
        return self.roles.get(user_id)


class TestCustomDirectories:
    """Any object with lookup() / role_of() can stand in for the SQL directories."""

    @pytest.fixture
    def external(self, db_session):
        return JournalEntryService(
            db_session,
            accounts=StaticAccounts({
                "1000": AccountInfo("1000", AccountType.ASSET, True),
                "4000": AccountInfo("4000", AccountType.REVENUE, True),
                "4999": AccountInfo("4999", AccountType.REVENUE, False),
            }),
            users=StaticUsers({"ext-clerk": Role.USER, "ext-boss": Role.ADMIN}),
        )

    def test_entry_posts_to_external_accounts(self, external, db_session):
        entry = make_entry(
            external, actor="ext-clerk",
            lines=[dr("1000", "60"), cr("4000", "60")],
        )
        db_session.commit()

        result = external.submit(entry.id, 1, "ext-clerk")
        assert result.entry.status == EntryStatus.PENDING

    def test_external_inactive_account_rejected(self, external):
        with pytest.raises(ValidationError, match="not active"):
            make_entry(
                external, actor="ext-clerk",
                lines=[dr("1000", "60"), cr("4999", "60")],
            )

    def test_external_role_gates_approval(self, external, db_session):
        entry = make_entry(
            external, actor="ext-clerk",
            lines=[dr("1000", "60"), cr("4000", "60")],
        )
        db_session.commit()
        external.submit(entry.id, 1, "ext-clerk")
        db_session.commit()

        with pytest.raises(ForbiddenError):
            external.approve(entry.id, 2, "ext-clerk")
        assert external.approve(entry.id, 2, "ext-boss").entry.status == EntryStatus.APPROVED

    def test_user_unknown_to_directory_forbidden(self, external):
        with pytest.raises(ForbiddenError):
            make_entry(external, actor="ulrich", lines=[dr("1000", "1")])
