from __future__ import annotations

from dataclasses import dataclass

import numpy as np

DEFAULT_WINDOW_SIZE = 20
DEFAULT_MIN_SAMPLES = 6
DEFAULT_DEGRADE_THRESHOLD = 0.55
DEFAULT_RECOVER_THRESHOLD = 0.65


@dataclass(frozen=True)
class DriftState:
    is_degraded: bool
    changed: bool
    average_score: np.float32


class DriftMonitor:
    """
    Sliding-window hysteresis over per-frame alignment scores.

    Flags degradation once the window average drops to ``degrade_threshold``
    and clears it only after the average climbs back to ``recover_threshold``.
    No transition is evaluated before ``min_samples`` scores have been seen.
    Scores are accumulated in float32.

    One instance per AR session; not thread-safe.
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        degrade_threshold: float = DEFAULT_DEGRADE_THRESHOLD,
        recover_threshold: float = DEFAULT_RECOVER_THRESHOLD,
        min_samples: int = DEFAULT_MIN_SAMPLES,
    ):
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, was {window_size}")
        if min_samples < 1:
            raise ValueError(f"min_samples must be >= 1, was {min_samples}")
        if min_samples > window_size:
            raise ValueError(
                f"min_samples ({min_samples}) must not exceed window_size ({window_size})"
            )
        if degrade_threshold >= recover_threshold:
            raise ValueError(
                f"degrade_threshold ({degrade_threshold}) must be below "
                f"recover_threshold ({recover_threshold})"
            )

        self.window_size = int(window_size)
        self.min_samples = int(min_samples)
        self.degrade_threshold = np.float32(degrade_threshold)
        self.recover_threshold = np.float32(recover_threshold)

        self._scores = np.zeros(self.window_size, dtype=np.float32)
        self._head = 0  # slot of the oldest score once the buffer is full
        self._count = 0
        self._total = np.float32(0.0)
        self._degraded = False

    @property
    def is_degraded(self) -> bool:
        return self._degraded

    @property
    def sample_count(self) -> int:
        return self._count

    def update(self, score: float) -> DriftState:
        value = np.float32(score)
        if self._count == self.window_size:
            self._total = np.float32(self._total - self._scores[self._head])
            self._scores[self._head] = value
            self._head = (self._head + 1) % self.window_size
        else:
            self._scores[(self._head + self._count) % self.window_size] = value
            self._count += 1
        self._total = np.float32(self._total + value)

        average = np.float32(self._total / np.float32(self._count))
        previous = self._degraded
        if self._count >= self.min_samples:
            if not self._degraded and average <= self.degrade_threshold:
                self._degraded = True
            elif self._degraded and average >= self.recover_threshold:
                self._degraded = False

        return DriftState(
            is_degraded=self._degraded,
            changed=previous != self._degraded,
            average_score=average,
        )

    def reset(self) -> None:
        self._scores.fill(0.0)
        self._head = 0
        self._count = 0
        self._total = np.float32(0.0)
        self._degraded = False
