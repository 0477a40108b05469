"""
Centroid store: one UserCentroid per user, mutated by save/skip feedback.

Every read-modify-write (and the authoritative recompute) runs under the
user's re-entrant lock, so concurrent feedback for one user serializes while
different users proceed independently. Callers that need several operations
to be atomic (recording an action and rebuilding from history) hold
lock(user_id) around them.

Implementations: InMemoryCentroidStore (tests, evaluation) and JsonCentroidStore
(file-backed, atomically rewritten on each change; an unreadable file
raises StoreError instead of being replaced).
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Union

from pydantic import ValidationError

from ..errors import StoreError
from ..models.centroid import UserCentroid
from ..models.config import DEFAULT_CONFIG, ScoringConfig
from ..models.decision import utc_now
from ..stages.centroid import (
    apply_save_vector,
    apply_skip_vector,
    recompute_vector,
    zero_vector,
)
from ..utils.similarity import check_dimensions

logger = logging.getLogger(__name__)


class CentroidStore(Protocol):
    """Protocol for user centroid persistence and update."""

    def get(self, user_id: str) -> Optional[UserCentroid]:
        ...

    def lock(self, user_id: str):
        """Context manager holding the user's re-entrant lock."""
        ...

    def apply_save(self, user_id: str, embedding: Sequence[float]) -> UserCentroid:
        ...

    def apply_skip(self, user_id: str, embedding: Sequence[float]) -> UserCentroid:
        ...

    def recompute_from_history(
        self,
        user_id: str,
        saved: List[Sequence[float]],
        skipped: List[Sequence[float]],
    ) -> UserCentroid:
        ...

    def list_user_ids(self) -> List[str]:
        ...


class BaseCentroidStore:
    """
    Update logic shared by all centroid stores.

    Subclasses provide _read(user_id) and _write(centroid); everything else
    (locking, dimension checks, versioning) happens here.
    """

    def __init__(self, config: ScoringConfig = DEFAULT_CONFIG):
        self._config = config
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # --- storage hooks ---

    def _read(self, user_id: str) -> Optional[UserCentroid]:
        raise NotImplementedError

    def _write(self, centroid: UserCentroid) -> None:
        raise NotImplementedError

    def list_user_ids(self) -> List[str]:
        raise NotImplementedError

    # --- locking ---

    def _user_lock(self, user_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[user_id] = lock
            return lock

    @contextmanager
    def lock(self, user_id: str) -> Iterator[None]:
        with self._user_lock(user_id):
            yield

    # --- operations ---

    def get(self, user_id: str) -> Optional[UserCentroid]:
        return self._read(user_id)

    def _check(self, embedding: Sequence[float], user_id: str) -> None:
        check_dimensions(embedding, self._config.embedding_dimensions, f"centroid user={user_id}")

    def _store(self, current: Optional[UserCentroid], user_id: str, **fields) -> UserCentroid:
        version = (current.version if current else 0) + 1
        base = current.model_dump() if current else {"user_id": user_id}
        base.update(fields, version=version, updated_at=utc_now())
        centroid = UserCentroid.model_validate(base)
        self._write(centroid)
        return centroid

    def apply_save(self, user_id: str, embedding: Sequence[float]) -> UserCentroid:
        """First save initialises the centroid; later saves fold in with α = 1/saved_count."""
        self._check(embedding, user_id)
        with self.lock(user_id):
            current = self._read(user_id)
            saved_count = (current.saved_count if current else 0) + 1
            prior = current.vector if current else zero_vector(len(embedding))
            vector = apply_save_vector(prior, embedding, saved_count)
            centroid = self._store(current, user_id, vector=vector, saved_count=saved_count)
        logger.debug(
            "[centroid] SAVE_APPLIED user_id=%s saved_count=%s version=%s",
            user_id, centroid.saved_count, centroid.version,
        )
        return centroid

    def apply_skip(self, user_id: str, embedding: Sequence[float]) -> UserCentroid:
        """Push away from the skipped embedding; a first-ever skip starts from a zero vector."""
        self._check(embedding, user_id)
        with self.lock(user_id):
            current = self._read(user_id)
            prior = current.vector if current else zero_vector(len(embedding))
            vector = apply_skip_vector(prior, embedding, self._config)
            skipped_count = (current.skipped_count if current else 0) + 1
            centroid = self._store(current, user_id, vector=vector, skipped_count=skipped_count)
        logger.debug(
            "[centroid] SKIP_APPLIED user_id=%s skipped_count=%s version=%s",
            user_id, centroid.skipped_count, centroid.version,
        )
        return centroid

    def recompute_from_history(
        self,
        user_id: str,
        saved: List[Sequence[float]],
        skipped: List[Sequence[float]],
    ) -> UserCentroid:
        """Authoritative overwrite from the full action history; replaces incremental drift."""
        for embedding in list(saved) + list(skipped):
            self._check(embedding, user_id)
        with self.lock(user_id):
            current = self._read(user_id)
            vector = recompute_vector(saved, skipped, self._config.embedding_dimensions, self._config)
            now = utc_now()
            centroid = self._store(
                current,
                user_id,
                vector=vector,
                saved_count=len(saved),
                skipped_count=len(skipped),
                last_recomputed_at=now,
            )
        logger.info(
            "[centroid] RECOMPUTED user_id=%s saved=%s skipped=%s version=%s",
            user_id, len(saved), len(skipped), centroid.version,
        )
        return centroid


class InMemoryCentroidStore(BaseCentroidStore):
    """Centroid store backed by a dict."""

    def __init__(self, config: ScoringConfig = DEFAULT_CONFIG):
        super().__init__(config)
        self._centroids: Dict[str, UserCentroid] = {}

    def _read(self, user_id: str) -> Optional[UserCentroid]:
        return self._centroids.get(user_id)

    def _write(self, centroid: UserCentroid) -> None:
        self._centroids[centroid.user_id] = centroid

    def list_user_ids(self) -> List[str]:
        return list(self._centroids)


class JsonCentroidStore(BaseCentroidStore):
    """Centroid store backed by a JSON file (e.g. data/centroids.json)."""

    def __init__(self, path: Union[Path, str], config: ScoringConfig = DEFAULT_CONFIG):
        super().__init__(config)
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file_lock = threading.Lock()
        self._centroids: Dict[str, UserCentroid] = {}
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path) as f:
                data = json.load(f)
            rows = data.get("centroids", []) if isinstance(data, dict) else data
            centroids = [UserCentroid.model_validate(row) for row in rows]
        except (json.JSONDecodeError, ValidationError, AttributeError, TypeError) as e:
            logger.error("[centroid] STORE_LOAD_FAILED path=%s error=%s", self._path, e)
            raise StoreError(f"Centroid store {self._path} is unreadable: {e}") from e
        self._centroids = {c.user_id: c for c in centroids}

    def _save(self) -> None:
        out = {"centroids": [c.model_dump(mode="json") for c in self._centroids.values()]}
        tmp = self._path.with_name(self._path.name + ".tmp")
        with open(tmp, "w") as f:
            json.dump(out, f, indent=2)
        os.replace(tmp, self._path)

    def _read(self, user_id: str) -> Optional[UserCentroid]:
        return self._centroids.get(user_id)

    def _write(self, centroid: UserCentroid) -> None:
        with self._file_lock:
            self._centroids[centroid.user_id] = centroid
            self._save()

    def list_user_ids(self) -> List[str]:
        return list(self._centroids)
