"""
Decision store: persisted ScoringDecisions, one per (chunk, user).

insert() enforces uniqueness atomically, which is what makes scoring
idempotent under concurrent requests for the same pair.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from ..errors import DuplicateDecisionError, UnknownDecisionError
from ..models.decision import ScoringDecision, UserAction

logger = logging.getLogger(__name__)


class DecisionStore(Protocol):
    """Protocol for decision persistence."""

    def insert(self, decision: ScoringDecision) -> ScoringDecision:
        """Store a new decision. Raises DuplicateDecisionError if the (chunk, user) pair exists."""
        ...

    def get(self, decision_id: str) -> Optional[ScoringDecision]:
        ...

    def get_for(self, chunk_id: str, user_id: str) -> Optional[ScoringDecision]:
        """Return the decision for this (chunk, user) pair, if any."""
        ...

    def update_action(
        self,
        decision_id: str,
        action: UserAction,
        at: Optional[datetime] = None,
    ) -> ScoringDecision:
        """Replace user_action/actioned_at. Raises UnknownDecisionError."""
        ...

    def list_for_user(
        self,
        user_id: str,
        action: Optional[UserAction] = None,
        limit: Optional[int] = None,
    ) -> List[ScoringDecision]:
        """Decisions for one user, newest first, optionally filtered by action."""
        ...

    def delete_unactioned_before(self, cutoff: datetime) -> int:
        """Delete never-actioned decisions created before cutoff. Returns the count."""
        ...


class InMemoryDecisionStore:
    """Decision store backed by dicts behind a single lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: Dict[str, ScoringDecision] = {}
        self._by_pair: Dict[Tuple[str, str], str] = {}

    def insert(self, decision: ScoringDecision) -> ScoringDecision:
        key = (decision.chunk_id, decision.user_id)
        with self._lock:
            if key in self._by_pair:
                raise DuplicateDecisionError(decision.chunk_id, decision.user_id)
            self._by_id[decision.id] = decision
            self._by_pair[key] = decision.id
        return decision

    def get(self, decision_id: str) -> Optional[ScoringDecision]:
        return self._by_id.get(decision_id)

    def get_for(self, chunk_id: str, user_id: str) -> Optional[ScoringDecision]:
        decision_id = self._by_pair.get((chunk_id, user_id))
        return self._by_id.get(decision_id) if decision_id else None

    def update_action(
        self,
        decision_id: str,
        action: UserAction,
        at: Optional[datetime] = None,
    ) -> ScoringDecision:
        with self._lock:
            current = self._by_id.get(decision_id)
            if current is None:
                raise UnknownDecisionError(f"Unknown decision {decision_id}")
            updated = current.with_action(action, at)
            self._by_id[decision_id] = updated
        return updated

    def list_for_user(
        self,
        user_id: str,
        action: Optional[UserAction] = None,
        limit: Optional[int] = None,
    ) -> List[ScoringDecision]:
        with self._lock:
            rows = [d for d in self._by_id.values() if d.user_id == user_id]
        if action is not None:
            rows = [d for d in rows if d.user_action == action]
        rows.sort(key=lambda d: d.created_at, reverse=True)
        return rows[:limit] if limit is not None else rows

    def delete_unactioned_before(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [
                d for d in self._by_id.values()
                if d.user_action == UserAction.UNSET and d.created_at < cutoff
            ]
            for d in stale:
                del self._by_id[d.id]
                self._by_pair.pop((d.chunk_id, d.user_id), None)
        if stale:
            logger.info("[retention] DECISIONS_DELETED count=%s cutoff=%s", len(stale), cutoff.isoformat())
        return len(stale)

    def __len__(self) -> int:
        return len(self._by_id)
