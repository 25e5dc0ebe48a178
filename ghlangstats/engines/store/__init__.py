"""Durable progress store — resumable collection state on local disk."""

from ghlangstats.engines.store.progress_store import ProgressStore
from ghlangstats.engines.store.schema import SCHEMA_VERSION, StoreDocument

__all__ = [
    "SCHEMA_VERSION",
    "ProgressStore",
    "StoreDocument",
]
