from zipfinder.models.entry import IndexedEntry, IndexedEntryBase, StagedEntry

__all__ = [
    "IndexedEntry",
    "IndexedEntryBase",
    "StagedEntry",
]
