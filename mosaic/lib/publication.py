"""Draft/published/archived lifecycle shared by entries and pages."""

from datetime import datetime, UTC
from enum import Enum
from typing import Protocol

from mosaic.lib.exceptions import InvalidTransitionError, ValidationError


class Status(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# archived is terminal
TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.DRAFT: frozenset({Status.PUBLISHED, Status.ARCHIVED}),
    Status.PUBLISHED: frozenset({Status.DRAFT, Status.ARCHIVED}),
    Status.ARCHIVED: frozenset(),
}

# Document actions exposed by the HTTP layer
ACTIONS: dict[str, Status] = {
    "publish": Status.PUBLISHED,
    "unpublish": Status.DRAFT,
    "archive": Status.ARCHIVED,
}

LIVE = "live"
PREVIEW = "preview"


class Publishable(Protocol):
    status: str
    published_at: datetime | None


def parse_status(value: str | Status) -> Status:
    try:
        return Status(value)
    except ValueError:
        raise ValidationError(
            f"Unknown status {value!r}; expected one of "
            + ", ".join(s.value for s in Status),
            field="status",
        ) from None


def status_for_action(action: str) -> Status:
    try:
        return ACTIONS[action]
    except KeyError:
        raise ValidationError(f"Unknown action {action!r}", field="action") from None


def can_transition(current: str | Status, target: str | Status) -> bool:
    current, target = parse_status(current), parse_status(target)
    return current == target or target in TRANSITIONS[current]


def apply_transition(
    obj: Publishable,
    target: str | Status,
    now: datetime | None = None,
) -> bool:
    """Move ``obj`` to ``target``, maintaining ``published_at``.

    Returns False when ``obj`` already has that status (nothing changes).
    ``published_at`` is stamped on entering ``published`` and cleared when
    a published object goes back to ``draft``.

    Raises:
        InvalidTransitionError: the transition table forbids the move
    """
    current = parse_status(obj.status)
    target = parse_status(target)

    if current == target:
        return False
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)

    obj.status = target.value
    if target is Status.PUBLISHED:
        obj.published_at = now or datetime.now(UTC)
    elif target is Status.DRAFT:
        obj.published_at = None
    return True


def validate_publication_state(value: str | None) -> str | None:
    if value is None or value in (LIVE, PREVIEW):
        return value
    raise ValidationError(
        f"publicationState must be {LIVE!r} or {PREVIEW!r}", field="publicationState"
    )
