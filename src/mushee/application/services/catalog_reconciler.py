"""Decide what an upload's fingerprint means for the uploading actor."""

import logging

from mushee.domain.entities import ReconciliationResult
from mushee.domain.ports import ISongRepository
from mushee.domain.value_objects import ActorId, ContentFingerprint

logger = logging.getLogger(__name__)


class CatalogReconciler:
    """Looks up a fingerprint and the actor's membership in one query.

    Hey future me - "entry exists" and "actor owns it" MUST come from the same
    round-trip (the repository does a LEFT JOIN). Two separate queries would
    let a concurrent upload slip in between them. Not-found is a normal result,
    not an error.
    """

    def __init__(self, song_repository: ISongRepository) -> None:
        self._song_repository = song_repository

    async def reconcile(
        self, fingerprint: ContentFingerprint, actor_id: ActorId
    ) -> ReconciliationResult:
        """Return the existing entry (if any) and whether actor_id owns it."""
        result = await self._song_repository.find_by_fingerprint_with_membership(
            fingerprint, actor_id
        )
        logger.debug(
            "Reconciled %s for actor %s: exists=%s owned=%s",
            fingerprint,
            actor_id,
            not result.is_new_content,
            result.already_owned_by_actor,
        )
        return result
