"""In-memory character registry.

The `Registry` is the only owner of the character collection. Records are
deep-copied on the way in and on the way out, so callers never hold a
reference into stored state. Every operation runs under a single lock and
either completes or raises a `RegistryError` without touching the collection.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .errors import (
    DuplicateId,
    EmptyRegistry,
    IdModificationForbidden,
    NotFound,
    UpstreamUnavailable,
    ValidationFailed,
)
from .validation import MUTABLE_FIELDS, validate_candidate, validate_patch

log = logging.getLogger(__name__)

Record = Dict[str, Any]


class Registry:
    """Ordered, process-lifetime collection of character records."""

    def __init__(self) -> None:
        self._records: List[Record] = []
        self._lock = threading.Lock()

    def _index_of(self, character_id: Any) -> Optional[int]:
        for i, rec in enumerate(self._records):
            if rec.get("id") == character_id:
                return i
        return None

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def replace_population(
        self, candidates: Optional[Sequence[Mapping[str, Any]]]
    ) -> int:
        """Reset the collection to the given upstream records.

        Candidates are trusted and stored verbatim, without create validation.

        Args:
            candidates: Records from the external source, or ``None`` when the
                source returned no usable payload.

        Returns:
            Number of records now stored.

        Raises:
            UpstreamUnavailable: If ``candidates`` is ``None`` or holds an entry
                that is not an object. The collection is left empty.
        """
        with self._lock:
            dropped = len(self._records)
            self._records = []
            if candidates is None:
                log.warning("registry.populate no_payload dropped=%d", dropped)
                raise UpstreamUnavailable()
            candidates = list(candidates)
            if not all(isinstance(c, Mapping) for c in candidates):
                log.warning("registry.populate malformed_payload dropped=%d", dropped)
                raise UpstreamUnavailable("Upstream returned malformed character results")
            self._records = [copy.deepcopy(dict(c)) for c in candidates]
            log.info(
                "registry.populate stored=%d dropped=%d", len(self._records), dropped
            )
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records = []

    def list_all(self) -> List[Record]:
        """Return every record in insertion order.

        Raises:
            EmptyRegistry: If nothing is stored.
        """
        with self._lock:
            if not self._records:
                raise EmptyRegistry()
            return copy.deepcopy(self._records)

    def get(self, character_id: Any) -> Record:
        with self._lock:
            idx = self._index_of(character_id)
            if idx is None:
                raise NotFound(character_id)
            return copy.deepcopy(self._records[idx])

    def create(self, candidate: Any) -> None:
        """Validate and append a new record.

        Raises:
            ValidationFailed: With every violation found.
            DuplicateId: If the candidate's id is already stored.
        """
        errors = validate_candidate(candidate)
        if errors:
            log.info("registry.create rejected errors=%d", len(errors))
            raise ValidationFailed(errors)

        with self._lock:
            if self._index_of(candidate["id"]) is not None:
                log.info("registry.create duplicate id=%r", candidate["id"])
                raise DuplicateId(candidate["id"])
            self._records.append(copy.deepcopy(dict(candidate)))
            log.info(
                "registry.create id=%r total=%d", candidate["id"], len(self._records)
            )

    def update(self, character_id: Any, patch: Mapping[str, Any]) -> None:
        """Apply whitelisted fields from ``patch`` to a stored record.

        The whole patch is validated before any field is written, so a failed
        update leaves the record untouched. Keys outside the whitelist are
        ignored.

        Raises:
            NotFound: If no record has ``character_id``.
            IdModificationForbidden: If the patch carries an ``id`` key.
            ValidationFailed: If `origin` or `location` is malformed.
        """
        with self._lock:
            idx = self._index_of(character_id)
            if idx is None:
                raise NotFound(character_id)
            if "id" in patch:
                log.info("registry.update id_change_refused id=%r", character_id)
                raise IdModificationForbidden()

            errors = validate_patch(patch)
            if errors:
                log.info(
                    "registry.update rejected id=%r errors=%d", character_id, len(errors)
                )
                raise ValidationFailed(errors)

            ignored = sorted(k for k in patch if k not in MUTABLE_FIELDS)
            if ignored:
                log.debug("registry.update ignored_keys=%s", ignored)

            record = self._records[idx]
            changed = [f for f in MUTABLE_FIELDS if f in patch]
            for field in changed:
                record[field] = copy.deepcopy(patch[field])
            log.info("registry.update id=%r fields=%s", character_id, changed)

    def delete(self, character_id: Any) -> None:
        """Remove the record with ``character_id``.

        Raises:
            NotFound: If no record has ``character_id``.
        """
        with self._lock:
            idx = self._index_of(character_id)
            if idx is None:
                raise NotFound(character_id)
            del self._records[idx]
            log.info(
                "registry.delete id=%r remaining=%d", character_id, len(self._records)
            )


# Process-wide registry served by the app
registry = Registry()
