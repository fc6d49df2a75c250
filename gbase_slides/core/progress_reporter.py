"""
Queue position and ETA computation.

Pure functions only: the orchestrator calls ``compute`` on every cooldown
tick and every job transition and never reuses a previous result.
"""

from gbase_slides.models.batch import QueueStatus


def estimate_eta(
    job_index: int,
    total: int,
    cooldown_remaining: float,
    per_job_estimate: float,
    interval: float
) -> float:
    """
    Seconds until the batch is expected to finish.

    The current job still needs its cooldown and one request; each later job
    needs a full interval (the request itself overlaps the next cooldown
    estimate).
    """
    remaining_jobs = max(0, total - 1 - job_index)
    return max(0.0, cooldown_remaining) + remaining_jobs * interval + per_job_estimate


class ProgressReporter:
    """Builds QueueStatus snapshots for one batch configuration."""

    def __init__(self, interval: float, per_job_estimate: float):
        self.interval = interval
        self.per_job_estimate = per_job_estimate

    def compute(self, job_index: int, total: int, cooldown_remaining: float = 0.0) -> QueueStatus:
        return QueueStatus(
            current_index=job_index,
            total=total,
            cooldown_remaining=cooldown_remaining,
            eta_seconds=estimate_eta(
                job_index, total, cooldown_remaining, self.per_job_estimate, self.interval
            )
        )
