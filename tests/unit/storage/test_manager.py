"""Unit tests for StorageManager."""

import io
from unittest.mock import patch

import pytest

from stowage.storage import (
    AliyunStorage,
    DriverNotSupported,
    InvalidConfig,
    LocalStorage,
    StorageManager,
    get_storage_manager,
)
from stowage.storage.manager import StorageManager as ManagerClass
from stowage.utils.config import Config, StorageConfig


class TestDisk:
    """Tests for disk lookup."""

    def test_returns_configured_disk(self, local_config):
        """Test lookup by name."""
        manager = StorageManager({"local": local_config}, "local")

        assert isinstance(manager.disk("local"), LocalStorage)

    def test_returns_same_instance(self, local_config):
        """Test that disks are created once."""
        manager = StorageManager({"local": local_config}, "local")

        assert manager.disk("local") is manager.disk("local")
        assert manager.disk() is manager.disk("local")

    def test_single_disk_is_default(self, local_config):
        """Test that a lone disk needs no explicit default."""
        manager = StorageManager({"only": local_config})

        assert manager.disk() is manager.disk("only")

    def test_unknown_disk_raises(self, local_config):
        """Test that an unconfigured name is an error, not a fallback."""
        manager = StorageManager({"local": local_config}, "local")

        with pytest.raises(InvalidConfig):
            manager.disk("missing")

    def test_missing_default_raises(self, local_config, tmp_path):
        """Test that no default is picked among several disks."""
        other = StorageConfig(driver="local", root=str(tmp_path / "other"))
        manager = StorageManager({"a": local_config, "b": other})

        with pytest.raises(InvalidConfig):
            manager.disk()

    def test_unknown_driver_raises(self):
        """Test that drivers must be registered."""
        with pytest.raises(DriverNotSupported) as exc_info:
            StorageManager({"ftp": StorageConfig(driver="ftp")})

        assert exc_info.value.driver == "ftp"

    def test_aliyun_disk(self, oss_config):
        """Test that the aliyun driver is wired."""
        with patch("stowage.storage.aliyun.oss2"):
            manager = StorageManager({"oss": oss_config}, "oss")

        assert isinstance(manager.disk("oss"), AliyunStorage)


class TestExtend:
    """Tests for custom drivers."""

    def test_extend_registers_driver(self, tmp_path):
        """Test that a registered class is instantiated with the disk config."""

        class MemoryStorage(LocalStorage):
            pass

        drivers = ManagerClass._drivers
        try:
            StorageManager.extend("memory", MemoryStorage)
            manager = StorageManager({"mem": StorageConfig(driver="memory", root=str(tmp_path))})

            assert isinstance(manager.disk("mem"), MemoryStorage)
        finally:
            ManagerClass._drivers = drivers


class TestFromConfig:
    """Tests for building the manager from configuration."""

    def test_from_yaml(self, tmp_path):
        """Test disk names, default and per disk keys."""
        config = Config(io.StringIO(
            "STORAGE_DISKS: [local, backup]\n"
            "STORAGE_DEFAULT: backup\n"
            "STORAGE_DRIVER_LOCAL: local\n"
            f"STORAGE_ROOT_LOCAL: {tmp_path / 'local'}\n"
            "STORAGE_DRIVER_BACKUP: local\n"
            f"STORAGE_ROOT_BACKUP: {tmp_path / 'backup'}\n"
        ))

        manager = StorageManager.from_config(config)

        assert manager.disks() == ["local", "backup"]
        assert manager.disk().driver() == (tmp_path / "backup").resolve()

    def test_global_manager(self, tmp_path, monkeypatch):
        """Test the lazily built process-wide manager."""
        monkeypatch.setenv("STORAGE_DISKS", "files")
        monkeypatch.setenv("STORAGE_DRIVER_FILES", "local")
        monkeypatch.setenv("STORAGE_ROOT_FILES", str(tmp_path / "files"))
        Config()

        manager = get_storage_manager()

        assert manager is get_storage_manager()
        assert isinstance(manager.disk(), LocalStorage)

    def test_disk_without_driver_raises(self, monkeypatch):
        """Test that a listed disk without a driver is rejected, not built as local."""
        monkeypatch.setenv("STORAGE_DISKS", "oss")
        monkeypatch.setenv("STORAGE_BUCKET_OSS", "prod-bucket")
        monkeypatch.delenv("STORAGE_DRIVER_OSS", raising=False)

        with pytest.raises(InvalidConfig, match="define driver for oss disk"):
            StorageManager.from_config(Config())

    def test_global_manager_requires_config(self):
        """Test that the global manager needs a loaded Config."""
        with pytest.raises(InvalidConfig):
            get_storage_manager()
