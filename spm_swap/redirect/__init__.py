"""
Redirect — url.<local>.insteadOf rules in the global git config.
"""
