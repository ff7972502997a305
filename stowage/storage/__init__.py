"""
Unified storage layer for file operations

This module provides one asynchronous interface over several storage backends:
- Aliyun OSS
- AWS S3
- MinIO
- Local filesystem

Usage:
    from stowage.storage import get_storage_manager

    storage = get_storage_manager().disk("oss")

    await storage.put("uploads/file.txt", b"content")
    content = (await storage.get("uploads/file.txt")).content

    # Another bucket, without touching the shared disk
    archive = storage.bucket("archive")
    await storage.copy("uploads/file.txt", "2024/file.txt", dest_bucket="archive")
"""

from .abstract import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_SIGNED_URL_EXPIRY,
    AbstractStorage,
)
from .aliyun import AliyunStorage
from .aws import AwsStorage
from .exceptions import (
    AuthorizationRequired,
    DriverNotSupported,
    FileNotFound,
    InvalidConfig,
    MethodNotSupported,
    PermissionMissing,
    StorageException,
    UnknownException,
    WrongKeyPath,
)
from .local import LocalStorage
from .manager import StorageManager, get_storage_manager, reset_storage_manager
from .minio import MinioStorage
from .responses import (
    ContentResponse,
    ExistsResponse,
    Response,
    SignedUrlResponse,
    StatResponse,
)

#-----------------------------------------------------------------------------
# Export all
#-----------------------------------------------------------------------------

__all__ = [
    # Contract
    "AbstractStorage",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_SIGNED_URL_EXPIRY",

    # Drivers
    "AliyunStorage",
    "AwsStorage",
    "LocalStorage",
    "MinioStorage",

    # Responses
    "ContentResponse",
    "ExistsResponse",
    "Response",
    "SignedUrlResponse",
    "StatResponse",

    # Errors
    "AuthorizationRequired",
    "DriverNotSupported",
    "FileNotFound",
    "InvalidConfig",
    "MethodNotSupported",
    "PermissionMissing",
    "StorageException",
    "UnknownException",
    "WrongKeyPath",

    # Registry
    "StorageManager",
    "get_storage_manager",
    "reset_storage_manager",
]
