"""
Feedback loop coordinator.

Turns save/skip events into centroid updates and runs the periodic jobs
(weekly recompute, retention cleanup). The task dispatcher delivers events
at least once, so every entry point is idempotent: recording the action a
decision already has is a no-op. A first action is folded in incrementally;
switching or withdrawing an action rebuilds the centroid from the recorded
history, which removes the earlier step exactly whatever followed it.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .errors import UnknownChunkError, UnknownDecisionError
from .models.centroid import UserCentroid
from .models.config import DEFAULT_CONFIG, ScoringConfig
from .models.decision import ScoringDecision, UserAction, utc_now
from .models.feedback import FeedbackEvent, ensure_event
from .services.centroid_store import CentroidStore
from .services.chunk_store import ChunkStore
from .services.decision_store import DecisionStore

logger = logging.getLogger(__name__)

TRIGGER_WEEKLY_RECOMPUTE = "weekly-recompute"
TRIGGER_RETENTION_CLEANUP = "retention-cleanup"


class FeedbackCoordinator:
    """Applies user feedback to decisions and centroids, and owns the periodic jobs."""

    def __init__(
        self,
        decisions: DecisionStore,
        chunks: ChunkStore,
        centroids: CentroidStore,
        config: ScoringConfig = DEFAULT_CONFIG,
    ):
        self._decisions = decisions
        self._chunks = chunks
        self._centroids = centroids
        self._config = config
        self._triggers: Dict[str, Callable[[], Any]] = {
            TRIGGER_WEEKLY_RECOMPUTE: self.recompute_all,
            TRIGGER_RETENTION_CLEANUP: self.cleanup_retention,
        }

    # -------------------------------------------------------------------------
    # Feedback
    # -------------------------------------------------------------------------

    def _embedding_for(self, decision: ScoringDecision) -> Optional[List[float]]:
        chunk = self._chunks.get(decision.chunk_id)
        if chunk is None:
            raise UnknownChunkError(
                f"Decision {decision.id} refers to unknown chunk {decision.chunk_id}"
            )
        if not chunk.has_embedding:
            return None
        return chunk.embedding

    def _apply(self, user_id: str, action: UserAction, embedding: Sequence[float]) -> None:
        if action == UserAction.SAVED:
            self._centroids.apply_save(user_id, embedding)
        elif action == UserAction.SKIPPED:
            self._centroids.apply_skip(user_id, embedding)

    def record_feedback(
        self,
        decision_id: str,
        action: Union[UserAction, str],
        at: Optional[datetime] = None,
    ) -> bool:
        """
        Record a user action on a decision and update the user's centroid.

        Returns False when the decision already carries this action (redelivery),
        True when anything changed. "unset" withdraws the previous action; a
        withdrawal or switch rebuilds the centroid from history under the user's lock.

        Raises:
            UnknownDecisionError: decision_id does not exist
            UnknownChunkError: the decision's chunk cannot be resolved
        """
        action = UserAction(action)
        decision = self._decisions.get(decision_id)
        if decision is None:
            raise UnknownDecisionError(f"Unknown decision {decision_id}")

        user_id = decision.user_id
        with self._centroids.lock(user_id):
            # Re-read under the lock; a concurrent delivery may have changed it.
            decision = self._decisions.get(decision_id)
            if decision is None:
                raise UnknownDecisionError(f"Unknown decision {decision_id}")
            previous = decision.user_action
            if previous == action:
                logger.debug(
                    "[feedback] ACTION_UNCHANGED decision_id=%s action=%s", decision_id, action.value,
                )
                return False

            embedding = self._embedding_for(decision)
            if previous != UserAction.UNSET:
                # Later steps may follow the withdrawn one; rebuild from history.
                self._decisions.update_action(decision_id, action, at)
                self.recompute_centroid(user_id)
            else:
                if embedding is None:
                    logger.warning(
                        "[feedback] CENTROID_UPDATE_SKIPPED decision_id=%s chunk_id=%s reason=no_embedding",
                        decision_id, decision.chunk_id,
                    )
                else:
                    self._apply(user_id, action, embedding)
                self._decisions.update_action(decision_id, action, at)

        logger.info(
            "[feedback] ACTION_RECORDED decision_id=%s user_id=%s previous=%s action=%s",
            decision_id, user_id, previous.value, action.value,
        )
        return True

    def handle_event(self, event: Union[FeedbackEvent, Dict[str, Any]]) -> bool:
        """Dispatcher entry point: resolve the decision by (chunk, user) and record the action."""
        event = ensure_event(event)
        decision = self._decisions.get_for(event.chunk_id, event.user_id)
        if decision is None:
            raise UnknownDecisionError(
                f"No decision for chunk={event.chunk_id} user={event.user_id}"
            )
        return self.record_feedback(decision.id, event.action)

    # -------------------------------------------------------------------------
    # Periodic jobs
    # -------------------------------------------------------------------------

    def _history_embeddings(self, decisions: List[ScoringDecision]) -> List[List[float]]:
        found = self._chunks.get_many(d.chunk_id for d in decisions)
        embeddings = []
        for d in decisions:
            chunk = found.get(d.chunk_id)
            if chunk is None or not chunk.has_embedding:
                logger.warning(
                    "[recompute] HISTORY_EMBEDDING_MISSING user_id=%s chunk_id=%s",
                    d.user_id, d.chunk_id,
                )
                continue
            embeddings.append(chunk.embedding)
        return embeddings

    def recompute_centroid(self, user_id: str) -> UserCentroid:
        """Rebuild one user's centroid from the full saved/skipped history."""
        with self._centroids.lock(user_id):
            saved = self._history_embeddings(
                self._decisions.list_for_user(user_id, action=UserAction.SAVED)
            )
            skipped = self._history_embeddings(
                self._decisions.list_for_user(user_id, action=UserAction.SKIPPED)
            )
            return self._centroids.recompute_from_history(user_id, saved, skipped)

    def recompute_all(self) -> List[UserCentroid]:
        """Weekly job: recompute every user that has a centroid."""
        user_ids = self._centroids.list_user_ids()
        results = [self.recompute_centroid(uid) for uid in user_ids]
        logger.info("[recompute] WEEKLY_RECOMPUTE_DONE users=%s", len(results))
        return results

    def cleanup_retention(self, now: Optional[datetime] = None) -> int:
        """Delete never-actioned decisions older than retention_days. Returns the count."""
        cutoff = (now or utc_now()) - timedelta(days=self._config.retention_days)
        deleted = self._decisions.delete_unactioned_before(cutoff)
        logger.info(
            "[retention] CLEANUP_DONE deleted=%s retention_days=%s",
            deleted, self._config.retention_days,
        )
        return deleted

    def handle_trigger(self, name: str) -> Any:
        """Run the job mapped to a dispatcher trigger name."""
        job = self._triggers.get(name)
        if job is None:
            raise ValueError(f"Unknown trigger: {name}. Supported: {sorted(self._triggers)}")
        return job()
