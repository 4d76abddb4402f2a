"""
Core modules for Snake Ways Sync.

This package contains the pure usage accounting: the delta calculator,
the reports built on it and formatting helpers.
"""
