"""
Sync orchestrators for Snake Ways resources.

Each resource type (user, WAN, LAN, interface, WAN usage, LAN usage) has a
synchronizer that writes upstream payloads to the local mirror.
"""

from .application import SyncApplication
from .orchestrator import SyncOrchestrator, SyncResult

__all__ = ["SyncApplication", "SyncOrchestrator", "SyncResult"]
