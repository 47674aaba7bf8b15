# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Group directory client, list membership add/remove/rename.
"Already a member" and "not a member" replies are logged, not raised.
"""

from typing import Any
from urllib.parse import quote

import httpx

from membership.core.config import settings
from membership.core.logging import get_logger
from membership.metrics.prometheus import GROUP_OPERATIONS

logger = get_logger(__name__)


class GroupDirectoryClient:
    """List membership operations against the directory service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        dry_run_adds: bool | None = None,
        dry_run_removes: bool | None = None,
    ) -> None:
        self._base_url = base_url or settings.DIRECTORY_SERVICE_URL
        self._timeout = timeout if timeout is not None else settings.DIRECTORY_TIMEOUT
        self._dry_run_adds = settings.TEST_GROUP_ADDS if dry_run_adds is None else dry_run_adds
        self._dry_run_removes = (
            settings.TEST_GROUP_REMOVES if dry_run_removes is None else dry_run_removes
        )

    def _members_url(self, group: str) -> str:
        return f"{self._base_url}/api/v1/groups/{quote(group)}/members"

    def add_member(self, email: str, group: str) -> None:
        if self._dry_run_adds:
            logger.info("TEST_GROUP_ADDS: would add %s to %s", email, group)
            return
        with httpx.Client(timeout=self._timeout) as client:
            resp = client.post(self._members_url(group), json={"email": email, "role": "MEMBER"})
        if resp.status_code == 409:
            logger.info("Member already exists: %s in %s", email, group)
            return
        resp.raise_for_status()
        GROUP_OPERATIONS.labels(operation="add").inc()
        logger.info("Added %s to %s", email, group)

    def remove_member(self, email: str, group: str) -> None:
        if self._dry_run_removes:
            logger.info("TEST_GROUP_REMOVES: would remove %s from %s", email, group)
            return
        with httpx.Client(timeout=self._timeout) as client:
            resp = client.delete(f"{self._members_url(group)}/{quote(email)}")
        if resp.status_code == 404:
            logger.info("Resource Not Found: %s is not in %s", email, group)
            return
        resp.raise_for_status()
        GROUP_OPERATIONS.labels(operation="remove").inc()
        logger.info("Removed %s from %s", email, group)

    def replace_email_in_groups(self, old_email: str, new_email: str) -> dict[str, Any]:
        """Swap an address in every list it belongs to. Never raises."""
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(
                    f"{self._base_url}/api/v1/members/rename",
                    json={"old_email": old_email, "new_email": new_email},
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Email change %s -> %s failed: %s", old_email, new_email, exc)
            return {"success": False, "message": str(exc)}
        GROUP_OPERATIONS.labels(operation="rename").inc()
        logger.info("Replaced %s with %s in groups", old_email, new_email)
        return {"success": True, "message": f"Replaced {old_email} with {new_email} in groups"}
