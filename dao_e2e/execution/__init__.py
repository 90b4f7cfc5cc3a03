"""
Test execution: executors, the worker pool and the multi-governance combiner.
"""

from .base_executor import BaseExecutor
from .process_executor import ProcessExecutor
from .scheduler import WorkerPoolScheduler
from .combiner import MultiRunCombiner, CombinedRunOutcome, build_combined_summary

__all__ = [
    "BaseExecutor",
    "ProcessExecutor",
    "WorkerPoolScheduler",
    "MultiRunCombiner",
    "CombinedRunOutcome",
    "build_combined_summary",
]
