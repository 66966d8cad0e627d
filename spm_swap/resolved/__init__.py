"""
Resolved — Find and parse Swift Package Manager Package.resolved files.
"""
