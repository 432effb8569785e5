from threading import Lock

from controller.models import MetricsSample


class StatsStore:
    """
    Latest metrics sample per agent, held in memory.

    Every operation takes the same lock for its whole duration, so readers
    never see a partially updated mapping.
    """

    def __init__(self):
        self._samples: dict[str, MetricsSample] = {}
        self._lock = Lock()

    def update(self, agent_id: str, sample: MetricsSample) -> None:
        with self._lock:
            self._samples[agent_id] = sample

    def get(self, agent_id: str) -> MetricsSample | None:
        with self._lock:
            return self._samples.get(agent_id)

    def snapshot(self) -> dict[str, MetricsSample] | None:
        """Return a copy of all samples, or None when nothing has been reported."""
        with self._lock:
            if not self._samples:
                return None
            return dict(self._samples)

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
