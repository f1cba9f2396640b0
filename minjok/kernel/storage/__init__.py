"""
Object storage boundary for uploaded manuscripts and cover images.
"""

from minjok.kernel.storage.object_storage import (
    ARTICLES_BUCKET,
    COVERS_BUCKET,
    LocalObjectStorage,
    ObjectStorage,
    StorageError,
    UploadedFile,
)

__all__ = [
    "ARTICLES_BUCKET",
    "COVERS_BUCKET",
    "LocalObjectStorage",
    "ObjectStorage",
    "StorageError",
    "UploadedFile",
]
