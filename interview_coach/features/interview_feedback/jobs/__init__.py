"""
Job runners for the interview feedback feature.
"""

from .expiry_sweep_job import ExpirySweepJob, start_transcript_expiry_sweep_scheduler

__all__ = ["ExpirySweepJob", "start_transcript_expiry_sweep_scheduler"]
