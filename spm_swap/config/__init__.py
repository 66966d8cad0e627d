"""
Config — Environment-driven settings for spm-git-swap.
"""
