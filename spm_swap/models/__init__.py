"""
Models — Immutable records passed between locator, store and mapper.
"""
