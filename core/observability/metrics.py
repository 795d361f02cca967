"""
Metrics Collection for the Reconciliation Engine

Collects and exposes metrics for:
- Batches (started, completed, result counts)
- Classification outcomes (results per status, issues per kind)
- Entity resolution (resolutions per match type, singletons created)
- Processing times (average, p95)

Metrics are held in memory only; the engine has no persisted state.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class BatchMetrics:
    """Metrics for batch reconciliation passes."""
    started: int = 0
    completed: int = 0
    payments: int = 0


@dataclass
class ClassificationMetrics:
    """Metrics for classified reconciliation results."""
    by_status: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    by_issue: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    demotions: int = 0


@dataclass
class ResolutionMetrics:
    """Metrics for entity resolution."""
    by_match_type: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    singletons_created: int = 0


@dataclass
class TimingMetrics:
    """Processing time metrics."""
    # Raw timing samples (keep last N for percentile calculations)
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    # By stage
    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if stage:
            self.by_stage[stage].append(duration_ms)
            if len(self.by_stage[stage]) > self.max_samples:
                self.by_stage[stage] = self.by_stage[stage][-self.max_samples:]

    def get_average(self, stage: str = None) -> float:
        """Get average processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        """Get 95th percentile processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for the reconciliation engine.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_batch_started(payment_count=120)
        metrics.record_result("Partially Reconciled", ["amount_mismatch"])
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.batches = BatchMetrics()
        self.classifications = ClassificationMetrics()
        self.resolutions = ResolutionMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # =========================================================================
    # Batch Metrics
    # =========================================================================

    def record_batch_started(self, payment_count: int):
        """Record the start of a reconciliation pass."""
        with self._lock:
            self.batches.started += 1
            self.batches.payments += payment_count

    def record_batch_completed(self, duration_ms: float = None):
        """Record the completion of a reconciliation pass."""
        with self._lock:
            self.batches.completed += 1
            if duration_ms is not None:
                self.timings.add_sample(duration_ms, "batch")

    # =========================================================================
    # Classification Metrics
    # =========================================================================

    def record_result(self, status: str, issue_kinds: List[str]):
        """Record one classified result."""
        with self._lock:
            self.classifications.by_status[status] += 1
            for kind in issue_kinds:
                self.classifications.by_issue[kind] += 1

    def record_demotion(self):
        """Record a late payer-name demotion."""
        with self._lock:
            self.classifications.demotions += 1

    # =========================================================================
    # Resolution Metrics
    # =========================================================================

    def record_resolution(self, match_type: str, created: bool = False):
        """Record an entity resolution outcome."""
        with self._lock:
            self.resolutions.by_match_type[match_type] += 1
            if created:
                self.resolutions.singletons_created += 1

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def record_processing_time(self, stage: str, duration_ms: float):
        """Record a processing time sample."""
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

    def get_timing_stats(self, stage: str = None) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "batches": {
                    "started": self.batches.started,
                    "completed": self.batches.completed,
                    "payments": self.batches.payments,
                },
                "classifications": {
                    "by_status": dict(self.classifications.by_status),
                    "by_issue": dict(self.classifications.by_issue),
                    "demotions": self.classifications.demotions,
                },
                "resolutions": {
                    "by_match_type": dict(self.resolutions.by_match_type),
                    "singletons_created": self.resolutions.singletons_created,
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_processing_time(stage: str, duration_ms: float):
    """Record a processing time sample."""
    get_metrics().record_processing_time(stage, duration_ms)
