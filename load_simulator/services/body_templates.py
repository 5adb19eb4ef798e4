"""Per-request placeholder substitution for dynamic bodies."""

import uuid
from datetime import UTC, datetime

USER_ID_PLACEHOLDER = b"{{userId}}"
TIMESTAMP_PLACEHOLDER = b"{{timestamp}}"
UUID_PLACEHOLDER = b"{{uuid}}"


def render_body(
    body: bytes | None, user_id: int, timestamp: datetime | None = None
) -> bytes | None:
    """Substitute dynamic placeholders in a request body.

    ``{{userId}}`` becomes the 1-based dispatch number, ``{{timestamp}}`` an
    RFC 3339 UTC timestamp and every ``{{uuid}}`` a fresh uuid4.

    Args:
        body: Raw body, returned untouched when None
        user_id: Simulated user number
        timestamp: Substitution time, defaults to now

    Returns:
        Body with placeholders replaced
    """
    if body is None:
        return None

    moment = timestamp or datetime.now(UTC)
    rendered = body.replace(USER_ID_PLACEHOLDER, str(user_id).encode())
    rendered = rendered.replace(TIMESTAMP_PLACEHOLDER, moment.isoformat().encode())

    while UUID_PLACEHOLDER in rendered:
        rendered = rendered.replace(UUID_PLACEHOLDER, str(uuid.uuid4()).encode(), 1)
    return rendered
