"""Request identity resolution.

Hey future me - MuShee does NOT do authentication itself. The auth gateway in
front of us verifies the user and forwards their UUID, either in the actor
header (X-Actor-Id by default) or as "Authorization: Bearer <uuid>" for API
clients. Anything that isn't a UUID counts as "no actor" and the upload
use case turns that into a 401.
"""

import logging
from collections.abc import Mapping

from mushee.domain.exceptions import ValidationError
from mushee.domain.ports import IIdentityProvider
from mushee.domain.value_objects import ActorId

logger = logging.getLogger(__name__)

DEFAULT_ACTOR_HEADER = "X-Actor-Id"


def parse_bearer_token(authorization: str) -> str:
    """Strip a case-insensitive "Bearer " prefix from an Authorization value.

    Args:
        authorization: Authorization header value

    Returns:
        Token with Bearer prefix removed (if present)
    """
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return authorization.strip()


class HeaderIdentityProvider(IIdentityProvider):
    """Resolves the actor from request headers.

    The actor header wins over Authorization when both are present.
    """

    def __init__(
        self, headers: Mapping[str, str], actor_header: str = DEFAULT_ACTOR_HEADER
    ) -> None:
        # Starlette Headers are case-insensitive, a plain dict isn't
        self._headers = {key.lower(): value for key, value in headers.items()}
        self._actor_header = actor_header.lower()

    async def get_current_actor(self) -> ActorId | None:
        """Return the actor, or None if no valid identity was sent."""
        raw = (self._headers.get(self._actor_header) or "").strip()
        if not raw:
            authorization = (self._headers.get("authorization") or "").strip()
            raw = parse_bearer_token(authorization) if authorization else ""
        if not raw:
            return None

        try:
            return ActorId.from_string(raw)
        except ValidationError:
            logger.debug("Ignoring malformed actor identity %r", raw[:64])
            return None
