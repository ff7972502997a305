"""Pytest fixtures for stowage tests."""

import pytest

import stowage.utils.config.config as config_module
from stowage.storage import reset_storage_manager
from stowage.utils.config import StorageConfig


@pytest.fixture(autouse=True)
def reset_globals():
    """Drop the process-wide config and storage manager between tests."""
    config_module._global_config = None
    reset_storage_manager()

    yield

    config_module._global_config = None
    reset_storage_manager()


@pytest.fixture
def local_config(tmp_path):
    """StorageConfig of a local disk rooted in a temporary directory."""
    return StorageConfig(driver="local", root=str(tmp_path / "disk"))


@pytest.fixture
def oss_config():
    """StorageConfig of an Aliyun OSS disk, as used against a docker emulator."""
    return StorageConfig(
        driver="aliyun",
        key="test-key",
        secret="test-secret",
        bucket="test-bucket",
        endpoint="localhost:9000",
        region="oss-cn-hangzhou",
        internal=False,
        secure=False,
    )
