"""Logging and performance utilities for the shielded pool client."""

from .utils import (
    setup_logging,
    PerformanceMetrics,
    PerformanceMonitor,
    OperationContext,
    create_performance_report,
    get_system_info,
    check_command_exists,
    format_duration,
)

__all__ = [
    'setup_logging',
    'PerformanceMetrics',
    'PerformanceMonitor',
    'OperationContext',
    'create_performance_report',
    'get_system_info',
    'check_command_exists',
    'format_duration',
]
