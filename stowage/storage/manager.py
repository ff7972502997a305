import logging
from typing import Dict, Optional, Type

from ..utils.config.storage import StorageConfig
from .abstract import AbstractStorage
from .aliyun import AliyunStorage
from .aws import AwsStorage
from .exceptions import DriverNotSupported, InvalidConfig
from .local import LocalStorage
from .minio import MinioStorage

logger = logging.getLogger(__name__)

#-----------------------------------------------------------------------------

class StorageManager:
    """
    Registry of configured disks

    Every disk is instantiated once, when the manager is built. disk() is a
    plain lookup afterwards: no fallback, no caching, no retry.
    """

    _drivers: Dict[str, Type[AbstractStorage]] = {
        "aliyun"    : AliyunStorage,
        "aws"       : AwsStorage,
        "minio"     : MinioStorage,
        "local"     : LocalStorage,
    }

    #-----------------------------------------------------

    def __init__(self, disks: Dict[str, StorageConfig], default: str = ""):
        self._default = default.strip()
        if not self._default and len(disks) == 1:
            self._default = next(iter(disks))

        self._disks: Dict[str, AbstractStorage] = {}
        for name, config in disks.items():
            self._disks[name] = self._create_disk(name, config)

        logger.info(f"Storage disks created: {', '.join(self._disks) or '(none)'}, default={self._default}")


    @classmethod
    def from_config(cls, config) -> "StorageManager":
        """
        Build the manager from the application configuration

        Args:
            config: stowage.utils.config.Config instance
        """
        names = [str(name).strip() for name in config.get_list("STORAGE_DISKS", [])]
        names = [name for name in names if name]

        disks = {name: config.get_storage(name) for name in names}
        return cls(disks, config.get_str("STORAGE_DEFAULT"))

    #-----------------------------------------------------

    @classmethod
    def extend(cls, driver: str, storage_class: Type[AbstractStorage]):
        """
        Register a custom driver

        The class is instantiated with the StorageConfig of each disk using it.
        """
        cls._drivers = {**cls._drivers, driver.strip().lower(): storage_class}
        logger.info(f"Storage driver registered: {driver} -> {storage_class.__name__}")


    @classmethod
    def _create_disk(cls, name: str, config: Optional[StorageConfig]) -> AbstractStorage:
        if config is None:
            raise InvalidConfig.missing_disk_config(name)

        driver = config.driver.strip().lower()
        if not driver:
            raise InvalidConfig.missing_disk_driver(name)

        storage_class = cls._drivers.get(driver)
        if storage_class is None:
            raise DriverNotSupported(driver)

        return storage_class(config)

    #-----------------------------------------------------

    def disk(self, name: Optional[str] = None) -> AbstractStorage:
        """
        Return the driver of a configured disk, or of the default disk

        Raises:
            InvalidConfig: No such disk, or no default disk configured
        """
        name = (name or "").strip() or self._default
        if not name:
            raise InvalidConfig.missing_disk_name()

        storage = self._disks.get(name)
        if storage is None:
            raise InvalidConfig.missing_disk_config(name)

        return storage


    def disks(self) -> list[str]:
        return list(self._disks)

#-----------------------------------------------------------------------------

_storage_manager: Optional[StorageManager] = None


def get_storage_manager() -> StorageManager:
    """
    Return the process-wide manager, built from global_config() on first use
    """
    global _storage_manager
    if _storage_manager is None:
        from ..utils.config import global_config

        config = global_config()
        if config is None:
            raise InvalidConfig("Configuration is not loaded, create a Config first")

        _storage_manager = StorageManager.from_config(config)

    return _storage_manager


def reset_storage_manager():
    """Reset the process-wide manager (useful for testing)"""
    global _storage_manager
    _storage_manager = None

#-----------------------------------------------------------------------------
