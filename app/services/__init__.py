from . import blob_storage, cascade, ordering, report_files

__all__ = [
    "blob_storage",
    "cascade",
    "ordering",
    "report_files",
]
