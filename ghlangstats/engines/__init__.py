"""Collection, storage and aggregation engines."""
