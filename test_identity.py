# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the identity index and ambiguity resolver.
"""

from membership.models.domain import Member, Transaction
from membership.services.identity import (
    Ambiguous,
    IdentityQuery,
    MultiMap,
    NoMatch,
    Unique,
    build_identity_index,
    name_key,
    resolve_member,
)


def member(email="", phone="", first="", last="", status="Active"):
    return Member(email=email, phone=phone, first=first, last=last, status=status)


def resolve(members, **query):
    return resolve_member(IdentityQuery(**query), build_identity_index(members))


# ============================================
# MultiMap
# ============================================
class TestMultiMap:
    def test_missing_key_is_empty(self):
        assert MultiMap().get("nobody") == frozenset()

    def test_add_collects_indices(self):
        mm = MultiMap()
        mm.add("a", 1)
        mm.add("a", 3)
        assert mm.get("a") == {1, 3}
        assert "a" in mm

    def test_empty_key_ignored(self):
        mm = MultiMap()
        mm.add("", 0)
        assert len(mm) == 0

    def test_remove_last_index_drops_key(self):
        mm = MultiMap()
        mm.add("a", 1)
        mm.remove("a", 1)
        assert "a" not in mm
        mm.remove("a", 1)  # no error on absent key


# ============================================
# Index
# ============================================
class TestBuildIdentityIndex:
    def test_normalizes_email(self):
        index = build_identity_index([member(email="  Ann@X.com ")])
        assert index.by_email.get("ann@x.com") == {0}

    def test_trims_phone(self):
        index = build_identity_index([member(phone=" 555-1234 ")])
        assert index.by_phone.get("555-1234") == {0}

    def test_only_active_members_indexed(self):
        index = build_identity_index([
            member(email="a@x.com", status="Expired"),
            member(email="a@x.com"),
        ])
        assert index.by_email.get("a@x.com") == {1}

    def test_name_key_letters_only(self):
        assert name_key("Mary-Jo", "O'Neil 2") == "maryjooneil"


# ============================================
# Resolver
# ============================================
class TestResolveMember:
    def test_no_members_is_no_match(self):
        assert resolve([], email="a@x.com") == NoMatch()

    def test_unique_email(self):
        members = [member(email="a@x.com"), member(email="b@x.com")]
        assert resolve(members, email="B@X.COM") == Unique(1)

    def test_email_beats_phone(self):
        members = [member(email="a@x.com", phone="111"), member(email="b@x.com", phone="222")]
        assert resolve(members, email="a@x.com", phone="222") == Unique(0)

    def test_falls_back_to_phone(self):
        members = [member(email="old@x.com", phone="555")]
        assert resolve(members, email="new@x.com", phone="555") == Unique(0)

    def test_empty_query_is_no_match(self):
        assert resolve([member(email="a@x.com", phone="555")]) == NoMatch()

    def test_expired_member_not_matched(self):
        members = [member(email="a@x.com", status="Expired")]
        assert resolve(members, email="a@x.com") == NoMatch()

    def test_phone_match_two_members_names_differ_is_ambiguous(self):
        members = [
            member(phone="555-1234", first="Ann", last="Lee"),
            member(phone="555-1234", first="Bob", last="Ray"),
        ]
        result = resolve(members, phone="555-1234", first="Cy", last="Doe")
        assert result == Ambiguous((0, 1))

    def test_phone_match_name_breaks_tie(self):
        members = [
            member(phone="555", first="Ann", last="Lee"),
            member(phone="555", first="Bob", last="Ray"),
        ]
        assert resolve(members, phone="555", first="bob", last="RAY") == Unique(1)

    def test_email_duplicates_name_breaks_tie(self):
        members = [
            member(email="fam@x.com", first="Ann", last="Lee"),
            member(email="fam@x.com", first="Bob", last="Lee"),
        ]
        assert resolve(members, email="fam@x.com", first="Ann", last="Lee") == Unique(0)

    def test_email_duplicates_same_name_stay_ambiguous(self):
        members = [
            member(email="fam@x.com", first="Ann", last="Lee"),
            member(email="fam@x.com", first="Ann", last="Lee"),
        ]
        result = resolve(members, email="fam@x.com", first="Ann", last="Lee")
        assert isinstance(result, Ambiguous)
        assert result.indices == (0, 1)

    def test_ambiguous_email_does_not_fall_through_to_phone(self):
        members = [
            member(email="fam@x.com", phone="111", first="Ann", last="Lee"),
            member(email="fam@x.com", phone="222", first="Bob", last="Lee"),
            member(email="c@x.com", phone="333", first="Cy", last="Doe"),
        ]
        result = resolve(members, email="fam@x.com", phone="333", first="Cy", last="Doe")
        assert result == Ambiguous((0, 1))

    def test_query_from_transaction(self):
        txn = Transaction.model_validate({
            "Email Address": "a@x.com", "Phone": "555", "First Name": "A", "Last Name": "B",
        })
        query = IdentityQuery.from_transaction(txn)
        assert query == IdentityQuery(email="a@x.com", phone="555", first="A", last="B")
