"""State layer.

This package is the single source of truth for the review queue: the
snapshot and cursor, the selection, request epochs, and the reducer-style
transitions the controller applies to them.
"""
