# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Action spec data access.
Notification templates keyed by type.
"""

from typing import Optional

from membership.models.domain import ActionSpec, ActionType

DEFAULT_ACTION_SPECS: tuple[dict, ...] = (
    {
        "Type": ActionType.JOIN,
        "Subject": "Welcome to the club, {First}!",
        "Body": "<p>Hi {First},</p><p>Your membership runs until {Expires}.</p>",
    },
    {
        "Type": ActionType.RENEW,
        "Subject": "Thanks for renewing, {First}",
        "Body": "<p>Hi {First},</p><p>Your membership now runs until {Expires}.</p>",
    },
    {
        "Type": ActionType.MIGRATE,
        "Subject": "Your membership has moved, {First}",
        "Body": "<p>Hi {First},</p><p>Your membership, joined {Joined}, runs until {Expires}.</p>",
    },
    {
        "Type": ActionType.EXPIRY1,
        "Subject": "Your membership expires on {Expires}",
        "Body": "<p>Hi {First},</p><p>Renew here: {Form}</p>",
        "Offset": -10,
    },
    {
        "Type": ActionType.EXPIRY2,
        "Subject": "Reminder: your membership expires on {Expires}",
        "Body": "<p>Hi {First},</p><p>Renew here: {Form}</p>",
        "Offset": -5,
    },
    {
        "Type": ActionType.EXPIRY3,
        "Subject": "Your membership expires today",
        "Body": "<p>Hi {First},</p><p>Renew here: {Form}</p>",
        "Offset": 0,
    },
    {
        "Type": ActionType.EXPIRY4,
        "Subject": "Your membership has expired",
        "Body": "<p>Hi {First},</p><p>Your membership expired on {Expires}. Rejoin here: {Form}</p>",
        "Offset": 10,
    },
)


class ActionSpecRepository:
    """In-memory action spec storage."""

    def __init__(self) -> None:
        self._store: dict[str, ActionSpec] = {}

    # ── Read ──

    def get(self, action_type: str) -> Optional[ActionSpec]:
        return self._store.get(action_type)

    def get_all(self) -> dict[str, ActionSpec]:
        return dict(self._store)

    def count(self) -> int:
        return len(self._store)

    # ── Write ──

    def save(self, spec: ActionSpec) -> None:
        self._store[spec.type] = spec

    def seed_defaults(self) -> int:
        """Install any default spec not already present."""
        added = 0
        for raw in DEFAULT_ACTION_SPECS:
            spec = ActionSpec.model_validate(raw)
            if spec.type not in self._store:
                self._store[spec.type] = spec
                added += 1
        return added

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._store.clear()
