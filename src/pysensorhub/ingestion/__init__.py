"""Ingestion layer.

Adapters that turn command payloads and raw platform samples into the typed
values the state layer works with.
"""

__all__: list[str] = []
