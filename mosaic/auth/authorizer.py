"""Write-access capability required by every mutating core operation.

The core never decides who the caller is. Callers hand services an
``Authorizer``; services call ``require()`` before validating or writing
anything, and a refusal surfaces as ``PermissionDeniedError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from mosaic.lib.exceptions import PermissionDeniedError

if TYPE_CHECKING:
    from mosaic.config import Settings

# The "administrator" permission is special - it bypasses all permission checks
ADMINISTRATOR_PERMISSION = "administrator"

MANAGE_CONTENT = "manage-content"
MANAGE_SCHEMA = "manage-schema"
MANAGE_PAGES = "manage-pages"
PUBLISH = "publish"


class Authorizer(Protocol):
    async def require(self, permission: str) -> None:
        """Return if ``permission`` is granted, raise PermissionDeniedError otherwise."""


@dataclass(frozen=True)
class PermissionAuthorizer:
    """Grants a fixed set of permission names."""

    permissions: frozenset[str] = frozenset()

    async def require(self, permission: str) -> None:
        if ADMINISTRATOR_PERMISSION in self.permissions or permission in self.permissions:
            return
        raise PermissionDeniedError(permission)


class _AllowAll:
    async def require(self, permission: str) -> None:
        return None


# For trusted in-process callers (CLI, seeding scripts, tests)
ALLOW_ALL: Authorizer = _AllowAll()
DENY_ALL: Authorizer = PermissionAuthorizer()


def authorizer_for_api_key(api_key: str | None, settings: Settings) -> Authorizer:
    """Build the authorizer for a request presenting ``api_key``.

    Unknown or missing keys get no permissions at all.
    """
    if not api_key:
        return DENY_ALL
    granted = settings.auth.api_keys.get(api_key)
    if granted is None:
        return DENY_ALL
    return PermissionAuthorizer(frozenset(granted))
