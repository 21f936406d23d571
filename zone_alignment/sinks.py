from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod

from .alignment.drift import DriftState
from .audit.payload import AlignmentPayload


class AlignmentSink(ABC):
    """Receives alignment and drift events; storage is the collaborator's concern."""

    @abstractmethod
    def write_alignment(self, payload: AlignmentPayload) -> None: ...

    @abstractmethod
    def write_drift(self, state: DriftState, timestamp_ms: int) -> None: ...

    def close(self) -> None:
        return None


class NullSink(AlignmentSink):
    def write_alignment(self, payload: AlignmentPayload) -> None:
        return None

    def write_drift(self, state: DriftState, timestamp_ms: int) -> None:
        return None


class LoggingSink(AlignmentSink):
    """Emits one JSON object per event through a logger."""

    def __init__(self, logger: logging.Logger, level: int = logging.INFO):
        self.logger = logger
        self.level = level

    def write_alignment(self, payload: AlignmentPayload) -> None:
        self.logger.log(
            self.level, "AR_ALIGNMENT_SET %s", json.dumps(payload.as_dict(), sort_keys=True)
        )

    def write_drift(self, state: DriftState, timestamp_ms: int) -> None:
        body = {
            "state": "degraded" if state.is_degraded else "recovered",
            "score": f"{float(state.average_score):.3f}",
            "timestamp": timestamp_ms,
        }
        self.logger.log(self.level, "alignment_drift %s", json.dumps(body, sort_keys=True))
