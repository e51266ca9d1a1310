"""State layer.

This package owns the authoritative in-memory spot collection. Every
mutation goes through :class:`SpotRepository`, which applies it to memory
first and persists it asynchronously.
"""
