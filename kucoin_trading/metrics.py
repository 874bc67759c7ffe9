"""
KuCoin Trading - Client Metrics.

============================================================
PURPOSE
============================================================
In-process counters for the exchange client.

METRICS TRACKED:
- Request latency (overall and by path)
- Success / rejection / transport failure counts
- Orders placed and rejected by code

============================================================
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict


logger = logging.getLogger(__name__)


@dataclass
class LatencyStats:
    """Latency statistics."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, latency_ms: float) -> None:
        self.count += 1
        self.total_ms += latency_ms
        self.min_ms = min(self.min_ms, latency_ms)
        self.max_ms = max(self.max_ms, latency_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_ms": round(self.avg_ms, 2),
            "min_ms": round(self.min_ms, 2) if self.count else 0.0,
            "max_ms": round(self.max_ms, 2),
        }


class ClientMetrics:
    """Metrics collector for one client instance."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Clear all counters."""
        self._latency = LatencyStats()
        self._latency_by_path: Dict[str, LatencyStats] = defaultdict(LatencyStats)
        self._outcomes: Dict[str, int] = defaultdict(int)
        self._orders_placed = 0
        self._rejections_by_code: Dict[str, int] = defaultdict(int)

    def record_request(self, path: str, latency_ms: float, outcome: str) -> None:
        """
        Record a completed request.

        Args:
            path: Request path without query string
            latency_ms: Round trip latency
            outcome: success, rejected or transport_error
        """
        self._latency.record(latency_ms)
        self._latency_by_path[path].record(latency_ms)
        self._outcomes[outcome] += 1

    def record_order_placed(self) -> None:
        self._orders_placed += 1

    def record_order_rejected(self, code: str) -> None:
        self._rejections_by_code[code or "NONE"] += 1

    def get_latency_by_path(self) -> Dict[str, Dict[str, Any]]:
        return {path: stats.to_dict() for path, stats in self._latency_by_path.items()}

    def get_summary(self) -> Dict[str, Any]:
        """Snapshot of all counters."""
        return {
            "requests": {
                "total": self._latency.count,
                "success": self._outcomes["success"],
                "rejected": self._outcomes["rejected"],
                "transport_error": self._outcomes["transport_error"],
            },
            "latency": self._latency.to_dict(),
            "latency_by_path": self.get_latency_by_path(),
            "orders": {
                "placed": self._orders_placed,
                "rejected": sum(self._rejections_by_code.values()),
                "rejected_by_code": dict(self._rejections_by_code),
            },
        }
