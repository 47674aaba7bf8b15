# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the expiry scheduler, the notification generator and the date helpers.
"""

from datetime import date, timedelta

import pytest

from membership.models.domain import ActionSpec, Member, ScheduleEntry
from membership.services.audit import AuditLogger
from membership.services.dates import (
    add_years,
    calculate_expiration_date,
    format_date,
    parse_date,
)
from membership.services.scheduler import (
    add_renewed_member_to_schedule,
    generate_expiring_members,
    index_action_specs,
    remove_schedule_for,
    schedule_entries_for,
)
from membership.services.templates import expand_template

TODAY = date(2025, 3, 1)
GROUPS = ["members@sc3.club", "member_discussions@sc3.club"]

SPECS = index_action_specs([
    ActionSpec(type="Join", subject="Welcome {First}", body="Joined {Joined}"),
    ActionSpec(type="Expiry1", subject="E1 {First}", body="Expires {Expires}", offset=-10),
    ActionSpec(type="Expiry2", subject="E2 {First}", body="Expires {Expires}", offset=-5),
    ActionSpec(type="Expiry3", subject="E3 {First}", body="Expires {Expires}", offset=0),
    ActionSpec(type="Expiry4", subject="E4 {First}", body="Renew at {Form}", offset=10),
])


def member(email="a@x.com", expires=date(2025, 3, 6), status="Active"):
    return Member(email=email, first="Ann", last="Lee", joined=date(2024, 3, 6),
                  expires=expires, status=status)


def entry(email, type, when):
    return ScheduleEntry(email=email, type=type, date=when)


# ============================================
# Dates
# ============================================
class TestDates:
    def test_parse_formats(self):
        assert parse_date("2025-03-01") == TODAY
        assert parse_date("3/1/2025") == TODAY
        assert parse_date("2025-03-01T10:00:00Z") == TODAY
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_parse_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_date("not a date")

    def test_add_years_leap_day_rolls_to_march(self):
        assert add_years(date(2024, 2, 29), 1) == date(2025, 3, 1)
        assert add_years(date(2024, 2, 29), 4) == date(2028, 2, 29)

    def test_early_renewal_keeps_remaining_time(self):
        assert calculate_expiration_date(TODAY, date(2025, 3, 11), 1) == date(2026, 3, 11)

    def test_late_renewal_starts_today(self):
        assert calculate_expiration_date(TODAY, date(2025, 1, 1), 2) == date(2027, 3, 1)

    def test_missing_dates_raise(self):
        with pytest.raises(ValueError):
            calculate_expiration_date(None, TODAY)
        with pytest.raises(ValueError):
            calculate_expiration_date(TODAY, None)

    def test_format_date(self):
        assert format_date(date(2025, 3, 1)) == "3/1/2025"
        assert format_date(None) == ""


class TestExpandTemplate:
    def test_replaces_placeholders(self):
        assert expand_template("Hi {First} {Last}", {"First": "Ann", "Last": "Lee"}) == "Hi Ann Lee"

    def test_dates_render_short(self):
        assert expand_template("On {Expires}", {"Expires": date(2026, 12, 15)}) == "On 12/15/2026"

    def test_empty_values_render_blank(self):
        assert expand_template("[{Phone}]", {"Phone": None}) == "[]"

    def test_unknown_placeholder_left_alone(self):
        assert expand_template("{Nope}", {}) == "{Nope}"


# ============================================
# Schedule maintenance
# ============================================
class TestScheduleEntriesFor:
    def test_all_four_in_future(self):
        expires = TODAY + timedelta(days=30)
        entries = schedule_entries_for("a@x.com", expires, SPECS, TODAY)
        assert {e.type: e.date for e in entries} == {
            "Expiry1": expires - timedelta(days=10),
            "Expiry2": expires - timedelta(days=5),
            "Expiry3": expires,
            "Expiry4": expires + timedelta(days=10),
        }

    def test_past_and_today_entries_dropped(self):
        expires = TODAY + timedelta(days=5)
        entries = schedule_entries_for("a@x.com", expires, SPECS, TODAY)
        assert sorted(e.type for e in entries) == ["Expiry3", "Expiry4"]

    def test_no_expiry_no_entries(self):
        assert schedule_entries_for("a@x.com", None, SPECS, TODAY) == []

    def test_non_expiry_specs_ignored(self):
        entries = schedule_entries_for("a@x.com", TODAY + timedelta(days=60), SPECS, TODAY)
        assert all(e.type.startswith("Expiry") for e in entries)
        assert len(entries) == 4


class TestRemoveAndRebuild:
    def test_remove_only_that_email(self):
        schedule = [entry("a@x.com", "Expiry1", TODAY), entry("b@x.com", "Expiry1", TODAY)]
        assert [e.email for e in remove_schedule_for("a@x.com", schedule)] == ["b@x.com"]

    def test_rebuild_replaces_stale_entries(self):
        stale = [entry("a@x.com", "Expiry1", date(2025, 3, 20)), entry("b@x.com", "Expiry2", date(2025, 4, 1))]
        renewed = member(expires=date(2026, 3, 6))
        schedule = add_renewed_member_to_schedule(renewed, stale, SPECS, TODAY)
        mine = sorted(e.date for e in schedule if e.email == "a@x.com")
        assert mine == [date(2026, 2, 24), date(2026, 3, 1), date(2026, 3, 6), date(2026, 3, 16)]
        assert len([e for e in schedule if e.email == "b@x.com"]) == 1

    def test_rebuild_does_not_mutate_input(self):
        stale = [entry("a@x.com", "Expiry1", date(2025, 3, 20))]
        add_renewed_member_to_schedule(member(expires=date(2026, 3, 6)), stale, SPECS, TODAY)
        assert len(stale) == 1


# ============================================
# Generator
# ============================================
class TestGenerateExpiringMembers:
    def test_due_entry_becomes_notification(self):
        schedule = [entry("a@x.com", "Expiry1", TODAY), entry("a@x.com", "Expiry2", date(2025, 3, 6))]
        run = generate_expiring_members([member()], schedule, SPECS, GROUPS, TODAY)
        assert run.processed == 1
        assert len(run.expiring) == 1
        note = run.expiring[0]
        assert note.email == "a@x.com"
        assert note.type == "Expiry1"
        assert note.subject == "E1 Ann"
        assert note.html_body == "Expires 3/6/2025"
        assert note.groups == ""
        assert [e.type for e in run.schedule] == ["Expiry2"]

    def test_future_entries_untouched(self):
        schedule = [entry("a@x.com", "Expiry3", date(2025, 3, 6))]
        run = generate_expiring_members([member()], schedule, SPECS, GROUPS, TODAY)
        assert run.expiring == []
        assert run.processed == 0
        assert run.schedule == schedule

    def test_one_notification_per_email_per_run(self):
        schedule = [entry("a@x.com", "Expiry2", TODAY), entry("a@x.com", "Expiry4", TODAY)]
        run = generate_expiring_members([member()], schedule, SPECS, GROUPS, TODAY)
        assert run.processed == 2
        assert [n.type for n in run.expiring] == ["Expiry4"]
        assert run.schedule == []

    def test_oldest_due_entry_wins(self):
        schedule = [entry("a@x.com", "Expiry1", TODAY - timedelta(days=5)), entry("a@x.com", "Expiry2", TODAY)]
        run = generate_expiring_members([member()], schedule, SPECS, GROUPS, TODAY)
        assert [n.type for n in run.expiring] == ["Expiry1"]

    def test_terminal_entry_expires_member_and_lists_groups(self):
        original = [member()]
        schedule = [entry("a@x.com", "Expiry4", TODAY)]
        run = generate_expiring_members(original, schedule, SPECS, GROUPS, TODAY)
        assert run.members[0].status == "Expired"
        assert original[0].status == "Active"
        assert run.expiring[0].groups == "members@sc3.club,member_discussions@sc3.club"

    def test_terminal_cleanup_removes_remaining_entries(self):
        schedule = [entry("a@x.com", "Expiry4", TODAY), entry("a@x.com", "Expiry1", date(2025, 6, 1))]
        run = generate_expiring_members([member()], schedule, SPECS, GROUPS, TODAY)
        assert run.schedule == []

    def test_non_terminal_keeps_future_entries(self):
        schedule = [entry("a@x.com", "Expiry1", TODAY), entry("a@x.com", "Expiry3", date(2025, 3, 6))]
        run = generate_expiring_members([member()], schedule, SPECS, GROUPS, TODAY)
        assert [e.type for e in run.schedule] == ["Expiry3"]

    def test_inactive_member_skipped_and_entry_dropped(self):
        schedule = [entry("a@x.com", "Expiry4", TODAY)]
        run = generate_expiring_members([member(status="Expired")], schedule, SPECS, GROUPS, TODAY)
        assert run.expiring == []
        assert run.processed == 1
        assert run.schedule == []

    def test_unknown_member_skipped(self):
        run = generate_expiring_members([], [entry("ghost@x.com", "Expiry1", TODAY)], SPECS, GROUPS, TODAY)
        assert run.expiring == []

    def test_prefill_link_exposed_as_form(self):
        schedule = [entry("a@x.com", "Expiry4", TODAY)]
        run = generate_expiring_members(
            [member()], schedule, SPECS, GROUPS, TODAY,
            prefill_template="https://form.example/renew?email={Email}",
        )
        assert run.expiring[0].html_body == "Renew at https://form.example/renew?email=a@x.com"

    def test_audit_entry_per_honored_notification(self):
        schedule = [entry("a@x.com", "Expiry2", TODAY), entry("a@x.com", "Expiry4", TODAY)]
        run = generate_expiring_members(
            [member()], schedule, SPECS, GROUPS, TODAY, audit_logger=AuditLogger()
        )
        assert len(run.audit_entries) == 1
        assert run.audit_entries[0].outcome == "success"
        assert "a@x.com" in run.audit_entries[0].note

    def test_no_audit_without_logger(self):
        run = generate_expiring_members([member()], [entry("a@x.com", "Expiry1", TODAY)], SPECS, GROUPS, TODAY)
        assert run.audit_entries == []
