# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for transaction reconciliation and member migration.
"""

from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from membership.models.domain import ActionSpec, Member, MigratingMember, ScheduleEntry, Transaction
from membership.services.audit import AuditLogger
from membership.services.migration import MemberMigrator
from membership.services.reconciliation import (
    TransactionReconciler,
    extract_directory_sharing,
    get_period,
)
from membership.services.scheduler import index_action_specs

TODAY = date(2025, 3, 1)
GROUPS = ["members@sc3.club", "member_discussions@sc3.club"]

SPECS = index_action_specs([
    ActionSpec(type="Join", subject="Welcome {First}", body="Expires {Expires}"),
    ActionSpec(type="Renew", subject="Renewed {First}", body="Expires {Expires}"),
    ActionSpec(type="Migrate", subject="Migrated {First}", body="Expires {Expires}"),
    ActionSpec(type="Expiry1", offset=-10),
    ActionSpec(type="Expiry2", offset=-5),
    ActionSpec(type="Expiry3", offset=0),
    ActionSpec(type="Expiry4", offset=10),
])


def txn(email="a@x.com", first="A", last="B", payment="1 year", status="Paid", **extra):
    data = {
        "Email Address": email, "First Name": first, "Last Name": last,
        "Payment": payment, "Payable Status": status,
    }
    data.update(extra)
    return Transaction.model_validate(data)


def member(email="a@x.com", first="A", last="B", phone="", expires=TODAY + timedelta(days=10)):
    return Member(email=email, first=first, last=last, phone=phone,
                  joined=date(2024, 3, 11), expires=expires, period=1)


def reconciler(**kwargs):
    return TransactionReconciler(SPECS, GROUPS, TODAY, **kwargs)


def expected_schedule(email, expires):
    return sorted(
        (email, expires + timedelta(days=offset)) for offset in (-10, -5, 0, 10)
        if expires + timedelta(days=offset) > TODAY
    )


def schedule_of(result, email):
    return sorted((e.email, e.date) for e in result.schedule if e.email == email)


# ============================================
# Helpers
# ============================================
class TestHelpers:
    @pytest.mark.parametrize("payment,years", [
        ("2 years", 2), ("1 year", 1), ("3year membership", 3), ("", 1), (None, 1), ("lifetime", 1),
    ])
    def test_get_period(self, payment, years):
        assert get_period(payment) == years

    def test_extract_directory_sharing(self):
        flags = extract_directory_sharing("Share Name, share PHONE")
        assert flags == {"share_name": True, "share_email": False, "share_phone": True}

    def test_extract_directory_sharing_empty(self):
        assert extract_directory_sharing(None) == {
            "share_name": False, "share_email": False, "share_phone": False,
        }


# ============================================
# Join
# ============================================
class TestJoin:
    def test_new_member_from_empty_set(self):
        result = reconciler().reconcile([txn(payment="2 years")], [], [])

        assert result.records_changed is True
        assert len(result.members) == 1
        new = result.members[0]
        assert new.status == "Active"
        assert new.period == 2
        assert new.joined == TODAY
        assert new.expires == date(2027, 3, 1)
        assert new.renewed_on is None
        assert schedule_of(result, "a@x.com") == expected_schedule("a@x.com", date(2027, 3, 1))
        assert len(result.schedule) == 4

    def test_transaction_stamped_processed(self):
        result = reconciler().reconcile([txn()], [], [])
        assert result.transactions[0].processed == TODAY
        assert result.transactions[0].timestamp == TODAY

    def test_join_notification_rendered_and_sent(self):
        send = MagicMock()
        result = reconciler(send_notification=send).reconcile([txn()], [], [])
        send.assert_called_once()
        message = send.call_args.args[0]
        assert message.to == "a@x.com"
        assert message.subject == "Welcome A"
        assert message.html_body == "Expires 3/1/2026"
        assert result.notifications == [message]

    def test_join_adds_member_to_every_group(self):
        add = MagicMock()
        reconciler(add_to_group=add).reconcile([txn()], [], [])
        assert [c.args for c in add.call_args_list] == [
            ("a@x.com", "members@sc3.club"), ("a@x.com", "member_discussions@sc3.club"),
        ]

    def test_join_copies_contact_and_directory_flags(self):
        t = txn(Phone="555-1234", Directory="Share Email")
        new = reconciler().reconcile([t], [], []).members[0]
        assert new.phone == "555-1234"
        assert new.share_email is True
        assert new.share_name is False

    def test_expired_member_with_same_email_gets_new_row(self):
        old = member().model_copy(update={"status": "Expired"})
        result = reconciler().reconcile([txn()], [old], [])
        assert len(result.members) == 2
        assert result.joined == 1


# ============================================
# Renew
# ============================================
class TestRenew:
    def test_early_renewal_keeps_remaining_time(self):
        result = reconciler().reconcile([txn(payment="1 year")], [member()], [])
        renewed = result.members[0]
        assert len(result.members) == 1
        assert renewed.expires == date(2026, 3, 11)
        assert renewed.renewed_on == TODAY
        assert result.renewed == 1

    def test_late_renewal_starts_today(self):
        lapsed = member(expires=TODAY - timedelta(days=3))
        renewed = reconciler().reconcile([txn(payment="2 years")], [lapsed], []).members[0]
        assert renewed.expires == date(2027, 3, 1)
        assert renewed.period == 2

    def test_schedule_regenerated(self):
        stale = [
            ScheduleEntry(email="a@x.com", type="Expiry3", date=TODAY + timedelta(days=10)),
            ScheduleEntry(email="a@x.com", type="Expiry4", date=TODAY + timedelta(days=20)),
        ]
        result = reconciler().reconcile([txn()], [member()], stale)
        assert schedule_of(result, "a@x.com") == expected_schedule("a@x.com", date(2026, 3, 11))

    def test_renew_sends_renew_notification_without_group_adds(self):
        send, add = MagicMock(), MagicMock()
        reconciler(send_notification=send, add_to_group=add).reconcile([txn()], [member()], [])
        assert send.call_args.args[0].subject == "Renewed A"
        add.assert_not_called()

    def test_renewal_matched_by_phone(self):
        existing = member(email="old@x.com", phone="555")
        result = reconciler().reconcile([txn(email="new@x.com", Phone="555")], [existing], [])
        assert len(result.members) == 1
        assert result.members[0].email == "old@x.com"

    def test_renewal_fills_missing_phone(self):
        result = reconciler().reconcile([txn(Phone="555")], [member(phone="")], [])
        assert result.members[0].phone == "555"


# ============================================
# Skips, ambiguity and errors
# ============================================
class TestSkipsAndAmbiguity:
    def test_unpaid_transaction_left_pending(self):
        result = reconciler().reconcile([txn(status="Pending")], [], [])
        assert result.has_pending_payments is True
        assert result.records_changed is False
        assert result.transactions[0].processed is None

    def test_blank_status_left_pending(self):
        assert reconciler().reconcile([txn(status="")], [], []).has_pending_payments is True

    def test_paid_status_case_insensitive(self):
        assert reconciler().reconcile([txn(status="PAID in full")], [], []).records_changed is True

    def test_ambiguous_phone_match_deferred(self):
        members = [
            member(email="ann@x.com", first="Ann", last="Lee", phone="555"),
            member(email="bob@x.com", first="Bob", last="Ray", phone="555"),
        ]
        t = txn(email="cy@x.com", first="Cy", last="Doe", Phone="555")

        result = reconciler().reconcile([t], members, [])

        assert result.members == members
        assert result.records_changed is False
        assert result.has_pending_payments is True
        assert result.transactions[0].processed is None
        assert len(result.ambiguous_transactions) == 1
        record = result.ambiguous_transactions[0]
        assert record.row == 2
        assert record.candidates == (0, 1)
        assert record.to_row()["Candidates"] == "0,1"

    def test_send_failure_recorded_and_batch_continues(self):
        send = MagicMock(side_effect=[RuntimeError("mail down"), None])
        transactions = [txn(email="a@x.com"), txn(email="b@x.com", first="C", last="D")]

        result = reconciler(send_notification=send).reconcile(transactions, [], [])

        assert len(result.errors) == 1
        error = result.errors[0]
        assert (error.row, error.email, error.message) == (2, "a@x.com", "mail down")
        assert [m.email for m in result.members] == ["b@x.com"]
        assert result.transactions[0].processed is None
        assert result.transactions[1].processed == TODAY
        assert {e.email for e in result.schedule} == {"b@x.com"}

    def test_missing_template_is_a_record_error(self):
        specs = {k: v for k, v in SPECS.items() if k != "Join"}
        result = TransactionReconciler(specs, GROUPS, TODAY).reconcile([txn()], [], [])
        assert len(result.errors) == 1
        assert result.members == []


# ============================================
# Properties
# ============================================
class TestProperties:
    def test_idempotent_second_run(self):
        first = reconciler().reconcile([txn(), txn(email="b@x.com", first="C", last="D")], [], [])
        second = reconciler().reconcile(first.transactions, first.members, first.schedule)
        assert second.records_changed is False
        assert second.members == first.members
        assert second.schedule == first.schedule

    def test_each_transaction_has_exactly_one_outcome(self):
        members = [
            member(email="r@x.com"),
            member(email="p1@x.com", first="Ann", last="Lee", phone="999"),
            member(email="p2@x.com", first="Bob", last="Ray", phone="999"),
        ]
        transactions = [
            txn(email="new@x.com"),
            txn(email="r@x.com"),
            txn(email="amb@x.com", first="Cy", last="Doe", Phone="999"),
        ]
        result = reconciler().reconcile(transactions, members, [])
        assert result.joined == 1
        assert result.renewed == 1
        assert len(result.ambiguous_transactions) == 1
        assert [t.processed is not None for t in result.transactions] == [True, True, False]
        assert len(result.members) == 4

    def test_inputs_not_mutated(self):
        transactions, members = [txn()], [member()]
        reconciler().reconcile(transactions, members, [])
        assert transactions[0].processed is None
        assert members[0].renewed_on is None

    def test_audit_entries(self):
        result = reconciler(audit_logger=AuditLogger()).reconcile([txn()], [], [])
        assert len(result.audit_entries) == 1
        entry = result.audit_entries[0]
        assert (entry.type, entry.outcome) == ("Join", "success")
        assert "a@x.com" in entry.note
        assert entry.error == ""
        assert entry.json_data == ""

    def test_no_audit_without_logger(self):
        assert reconciler().reconcile([txn()], [], []).audit_entries == []


# ============================================
# Migration
# ============================================
def migrator_row(**overrides):
    data = {
        "Email": "m@x.com", "First": "Mo", "Last": "Ng", "Phone": "555",
        "Joined": "2024-06-01", "Period": 1, "Expires": "2025-06-01", "Renewed On": "",
        "Directory": True, "Migrate Me": True, "Migrated": "", "Status": "Active",
        "members@sc3.club": True, "member_discussions@sc3.club": False,
    }
    data.update(overrides)
    return MigratingMember.model_validate(data)


class TestMigration:
    def migrate(self, rows, members=(), **kwargs):
        return MemberMigrator(SPECS, TODAY, **kwargs).migrate(rows, list(members), [])

    def test_active_member_migrated(self):
        send, add = MagicMock(), MagicMock()
        result = self.migrate([migrator_row()], send_notification=send, add_to_group=add)

        assert result.migrated == 1
        new = result.members[0]
        assert (new.email, new.status, new.migrated) == ("m@x.com", "Active", TODAY)
        assert new.share_name and new.share_email and new.share_phone
        add.assert_called_once_with("m@x.com", "members@sc3.club")
        assert send.call_args.args[0].subject == "Migrated Mo"
        assert len(result.schedule) == 4
        assert result.migrators[0].migrated == TODAY

    def test_inactive_member_imported_quietly(self):
        send, add = MagicMock(), MagicMock()
        result = self.migrate([migrator_row(Status="Expired")], send_notification=send, add_to_group=add)
        assert result.members[0].status == "Expired"
        assert result.schedule == []
        send.assert_not_called()
        add.assert_not_called()

    def test_rows_skipped(self):
        rows = [
            migrator_row(Email=""),
            migrator_row(Email="done@x.com", Migrated="2025-01-01"),
            migrator_row(Email="later@x.com", **{"Migrate Me": False}),
            migrator_row(Email="a@x.com"),
        ]
        result = self.migrate(rows, members=[member()])
        assert result.migrated == 0
        assert len(result.members) == 1

    def test_failure_returned_per_row(self):
        send = MagicMock(side_effect=[RuntimeError("boom"), None])
        rows = [migrator_row(), migrator_row(Email="n@x.com")]
        result = self.migrate(rows, send_notification=send)
        assert [(e.row, e.email) for e in result.errors] == [(2, "m@x.com")]
        assert [m.email for m in result.members] == ["n@x.com"]
        assert result.migrators[0].migrated is None
        assert result.migrators[1].migrated == TODAY
