from __future__ import annotations

from datetime import timedelta
from threading import Lock

from deskcanvas.core.utils import utc_now
from deskcanvas.infrastructure.logging import get_logger
from deskcanvas.orchestrator.types import OperationRecord, OperationState

logger = get_logger(__name__)


class OperationTracker:
    """Process-local map of identity (email) to the latest ticket operation.

    Every ``mark_in_progress`` issues a new per-identity sequence number. Terminal
    writes that carry an older sequence number are dropped, so a slow first
    submission cannot overwrite the outcome slot of a newer one. Entries are never
    evicted.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._records: dict[str, OperationRecord] = {}
        self._sequences: dict[str, int] = {}

    @staticmethod
    def _key(identity: str) -> str:
        return identity.strip().lower()

    def mark_in_progress(self, identity: str) -> int:
        key = self._key(identity)
        now = utc_now()
        with self._lock:
            sequence = self._sequences.get(key, 0) + 1
            self._sequences[key] = sequence
            previous = self._records.get(key)
            self._records[key] = OperationRecord(
                state=OperationState.IN_PROGRESS,
                started_at=now,
                sequence=sequence,
                updated_at=now,
            )
        if previous is not None and previous.in_progress:
            logger.info("operation_superseded", identity=key, previous_sequence=previous.sequence, sequence=sequence)
        return sequence

    def mark_completed(self, identity: str, ticket_id: int, *, sequence: int | None = None) -> bool:
        return self._finish(
            identity,
            state=OperationState.COMPLETED,
            sequence=sequence,
            ticket_id=ticket_id,
        )

    def mark_failed(self, identity: str, error: str, *, sequence: int | None = None) -> bool:
        return self._finish(
            identity,
            state=OperationState.FAILED,
            sequence=sequence,
            error_message=error,
        )

    def _finish(
        self,
        identity: str,
        *,
        state: OperationState,
        sequence: int | None,
        ticket_id: int | None = None,
        error_message: str | None = None,
    ) -> bool:
        key = self._key(identity)
        now = utc_now()
        with self._lock:
            latest = self._sequences.get(key, 0)
            if sequence is not None and sequence != latest:
                stale = True
            else:
                stale = False
                current = self._records.get(key)
                self._records[key] = OperationRecord(
                    state=state,
                    started_at=current.started_at if current is not None else now,
                    sequence=sequence if sequence is not None else latest,
                    updated_at=now,
                    ticket_id=ticket_id,
                    error_message=error_message,
                )
        if stale:
            logger.warning(
                "operation_stale_write_dropped",
                identity=key,
                state=state.value,
                sequence=sequence,
                latest_sequence=latest,
            )
            return False
        return True

    def get(self, identity: str) -> OperationRecord | None:
        with self._lock:
            return self._records.get(self._key(identity))

    def clear(self, identity: str) -> bool:
        with self._lock:
            return self._records.pop(self._key(identity), None) is not None

    def clear_if_stale(self, identity: str, *, older_than_seconds: float = 0.0) -> bool:
        """Drops an in-progress record that started at least ``older_than_seconds`` ago."""
        key = self._key(identity)
        cutoff = utc_now() - timedelta(seconds=max(0.0, older_than_seconds))
        with self._lock:
            record = self._records.get(key)
            if record is None or not record.in_progress or record.started_at > cutoff:
                return False
            del self._records[key]
        logger.info("operation_stale_cleared", identity=key, sequence=record.sequence)
        return True

    def snapshot(self) -> dict[str, OperationRecord]:
        with self._lock:
            return dict(self._records)
