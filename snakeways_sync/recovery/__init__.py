"""
Manual recovery API.

Lets an operator force an immediate sync, restart stalled polling and
read usage figures.
"""

from .facade import RecoveryFacade, RestartResult

__all__ = ["RecoveryFacade", "RestartResult"]
