"""Current-user identity supplied by the upstream auth gateway."""

from __future__ import annotations

from dataclasses import dataclass

USER_ID_HEADER = "X-User-Id"
USER_EMAIL_HEADER = "X-User-Email"
USER_FULL_NAME_HEADER = "X-User-Full-Name"


@dataclass(slots=True, frozen=True)
class CurrentUser:
    """Authenticated user as asserted by the gateway; never verified here."""

    id: str
    email: str | None = None
    full_name: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def user_from_headers(
    user_id: str | None,
    email: str | None = None,
    full_name: str | None = None,
) -> CurrentUser | None:
    """Build a CurrentUser from gateway headers; None when unauthenticated."""

    resolved_id = _clean(user_id)
    if resolved_id is None:
        return None
    return CurrentUser(id=resolved_id, email=_clean(email), full_name=_clean(full_name))
