"""Utility modules for fsagent.

This module exports commonly used utility functions.
"""

from fsagent.utils.formatting import (
    configure_logging,
    console,
    err_console,
    print_error,
    print_hint,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "configure_logging",
    "console",
    "err_console",
    "print_error",
    "print_hint",
    "print_info",
    "print_success",
    "print_warning",
]
