"""
spm-git-swap — Serve Swift Package Manager dependencies from local mirrors.

Scans a tree for Package.resolved files, mirrors every pinned repository
locally, and points git at those mirrors via url.<local>.insteadOf rules.
"""

__version__ = "0.1.0"
