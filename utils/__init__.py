"""
hostfault Utilities
Command execution, flag parsing, system checks and progress tracking.
"""

from .system_check import SystemCheck
from .progress import ProgressTracker

__all__ = ['SystemCheck', 'ProgressTracker']
