"""
Loaders: batched writes and the document-store back-ends.

Modules:
    batch_writer: BatchWriter with operation/size ceilings and commit timeout
    stores: FirestoreRestStore (primary and emulated) and FilesystemStore
    factory: build the store for a RunOptions destination
"""

__all__ = [
    "BatchWriter",
    "DocumentStore",
    "FirestoreRestStore",
    "FilesystemStore",
    "create_store",
]
