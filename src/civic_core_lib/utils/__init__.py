"""Utility Functions"""

from civic_core_lib.utils.resilience import (
    service_startup_retry,
    dependency_retrying,
    guard_dependency,
)

__all__ = [
    "service_startup_retry",
    "dependency_retrying",
    "guard_dependency",
]
