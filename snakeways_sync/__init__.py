"""
Snake Ways Sync.

Polls a Snake Ways fleet network appliance, mirrors its resources locally
and derives usage figures from the daily counter snapshots.
"""

__version__ = "0.1.0"
