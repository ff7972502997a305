"""
stowage: one asynchronous file storage interface over Aliyun OSS, AWS S3,
MinIO and the local filesystem.
"""

__version__ = "0.2.0"

from .storage import (
    AbstractStorage,
    StorageManager,
    get_storage_manager,
)
from .utils import Config, StorageConfig
