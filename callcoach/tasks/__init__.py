"""
Background job processing
"""

from .queue import AnalysisQueue, Job, JobStatus, QueueManager
