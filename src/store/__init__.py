"""Storage layer.

This package keeps the in-memory map and mirrors it to per-identity
JSON snapshots with cached, serialized reconciliation.
"""
