from .json_store import JsonFileStore, StoreChange, diff_snapshots

__all__ = ["JsonFileStore", "StoreChange", "diff_snapshots"]
