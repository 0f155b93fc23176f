"""
Prometheus metrics for media jobs

- jobs by kind and outcome
- job wall-clock duration
- engine processes currently running
- stored upload sizes
"""
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
import structlog

logger = structlog.get_logger()


class MediaJobMetrics:
    """Collectors for job processing, kept on a private registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, enabled: bool = True):
        self.registry = registry or CollectorRegistry()
        self.enabled = enabled

        self.jobs_total = Counter(
            'mediajobs_jobs_total',
            'Total number of jobs by kind and outcome',
            ['kind', 'outcome'],
            registry=self.registry
        )

        self.job_duration_seconds = Histogram(
            'mediajobs_job_duration_seconds',
            'Job processing duration in seconds',
            ['kind'],
            buckets=[0.5, 1, 5, 10, 30, 60, 300, 600, 1800],
            registry=self.registry
        )

        self.engine_processes_active = Gauge(
            'mediajobs_engine_processes_active',
            'Transcoding engine processes currently running',
            registry=self.registry
        )

        self.upload_size_bytes = Histogram(
            'mediajobs_upload_size_bytes',
            'Size of stored uploads in bytes',
            buckets=[1e5, 1e6, 10e6, 100e6, 500e6, 1e9],
            registry=self.registry
        )

    def record_job(self, kind: str, outcome: str, duration: float) -> None:
        """``outcome`` is ``success`` or the failure stage."""
        if not self.enabled:
            return
        self.jobs_total.labels(kind=kind, outcome=outcome).inc()
        self.job_duration_seconds.labels(kind=kind).observe(duration)

    def record_upload(self, size_bytes: int) -> None:
        if self.enabled:
            self.upload_size_bytes.observe(size_bytes)

    def engine_started(self) -> None:
        if self.enabled:
            self.engine_processes_active.inc()

    def engine_finished(self) -> None:
        if self.enabled:
            self.engine_processes_active.dec()
