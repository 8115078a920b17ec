"""Scheduler adapters - Background maintenance jobs."""

from .background import build_jobs, create_scheduler

__all__ = ["build_jobs", "create_scheduler"]
