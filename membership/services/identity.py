# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Identity index and ambiguity resolver, pure computation.

The index is a value rebuilt from the member list on every call; nothing
is cached between runs. The resolver never guesses: when a key matches
several members and the name cannot single one out, the whole candidate
set comes back as `Ambiguous`.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from membership.models.domain import Member, Transaction

_NOT_LETTER = re.compile(r"[^a-z]")


class MultiMap:
    """Key to set-of-indices mapping. Missing keys read as an empty set."""

    def __init__(self) -> None:
        self._map: dict[str, set[int]] = {}

    def add(self, key: str, index: int) -> None:
        if not key:
            return
        self._map.setdefault(key, set()).add(index)

    def remove(self, key: str, index: int) -> None:
        bucket = self._map.get(key)
        if bucket is None:
            return
        bucket.discard(index)
        if not bucket:
            del self._map[key]

    def get(self, key: str) -> frozenset[int]:
        return frozenset(self._map.get(key, ()))

    def __contains__(self, key: str) -> bool:
        return key in self._map

    def __len__(self) -> int:
        return len(self._map)


def normalize_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def normalize_phone(value: Optional[str]) -> str:
    return (value or "").strip()


def name_key(first: Optional[str], last: Optional[str]) -> str:
    """First + last, lowercased, letters only."""
    return _NOT_LETTER.sub("", f"{first or ''}{last or ''}".lower())


@dataclass(frozen=True)
class IdentityIndex:
    by_email: MultiMap
    by_phone: MultiMap
    name_keys: dict[int, str] = field(default_factory=dict)


def build_identity_index(members: Sequence[Member]) -> IdentityIndex:
    """Index Active members by normalized email and phone."""
    by_email = MultiMap()
    by_phone = MultiMap()
    name_keys: dict[int, str] = {}
    for i, member in enumerate(members):
        if member is None or not member.is_active:
            continue
        by_email.add(normalize_email(member.email), i)
        by_phone.add(normalize_phone(member.phone), i)
        name_keys[i] = name_key(member.first, member.last)
    return IdentityIndex(by_email=by_email, by_phone=by_phone, name_keys=name_keys)


# ── Resolution outcomes ──

@dataclass(frozen=True)
class Unique:
    index: int


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class Ambiguous:
    indices: tuple[int, ...]


Resolution = Union[Unique, NoMatch, Ambiguous]


@dataclass(frozen=True)
class IdentityQuery:
    email: str = ""
    phone: str = ""
    first: str = ""
    last: str = ""

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "IdentityQuery":
        return cls(email=txn.email, phone=txn.phone, first=txn.first, last=txn.last)

    @classmethod
    def from_member(cls, member: Member) -> "IdentityQuery":
        return cls(email=member.email, phone=member.phone, first=member.first, last=member.last)


def _narrow(candidates: frozenset[int], query_name: str, index: IdentityIndex) -> Resolution:
    if len(candidates) == 1:
        return Unique(next(iter(candidates)))
    if query_name:
        named = [i for i in candidates if index.name_keys.get(i) == query_name]
        if len(named) == 1:
            return Unique(named[0])
    return Ambiguous(tuple(sorted(candidates)))


def resolve_member(query: IdentityQuery, index: IdentityIndex) -> Resolution:
    """Email first, then phone; the name only breaks ties inside one key's candidates."""
    query_name = name_key(query.first, query.last)

    email = normalize_email(query.email)
    if email:
        candidates = index.by_email.get(email)
        if candidates:
            return _narrow(candidates, query_name, index)

    phone = normalize_phone(query.phone)
    if phone:
        candidates = index.by_phone.get(phone)
        if candidates:
            return _narrow(candidates, query_name, index)

    return NoMatch()
