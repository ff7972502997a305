"""Unit tests for Config."""

import io
import logging
import os

import pytest

from stowage.utils.config import Config, FernetEncrypter, StorageConfig, global_config, safe_read_cfg


YAML = """
LOG_LEVEL: debug
STORAGE_DISKS: [oss]
STORAGE_DRIVER_OSS: aliyun
STORAGE_KEY_OSS: test-key
STORAGE_BUCKET_OSS: test-bucket
STORAGE_ENDPOINT_OSS: oss-cn-hangzhou.aliyuncs.com
STORAGE_SECURE_OSS: false
"""


class TestGetters:
    """Tests for the typed getters."""

    def test_keys_are_case_insensitive(self):
        """Test that YAML keys are upper-cased."""
        config = Config(io.StringIO("lower_key: value\n"))

        assert config.get_str("lower_key") == "value"
        assert config.get_str("LOWER_KEY") == "value"

    def test_environment_wins(self, monkeypatch):
        """Test that environment variables override files."""
        monkeypatch.setenv("STORAGE_BUCKET_OSS", "from-env")
        config = Config(io.StringIO(YAML))

        assert config.get_str("STORAGE_BUCKET_OSS") == "from-env"

    def test_typed_values(self):
        """Test int, bool, list and dict conversions."""
        config = Config(io.StringIO(
            "AN_INT: '42'\n"
            "A_BOOL: 'yes'\n"
            "A_LIST: '[\"a\", \"b\"]'\n"
            "A_CSV: a, b\n"
            "A_DICT: '{\"k\": 1}'\n"
        ))

        assert config.get_int("AN_INT") == 42
        assert config.get_int("MISSING", 7) == 7
        assert config.get_bool("A_BOOL") is True
        assert config.get_bool("MISSING", True) is True
        assert config.get_list("A_LIST") == ["a", "b"]
        assert config.get_list("A_CSV") == ["a", "b"]
        assert config.get_dict("A_DICT") == {"k": 1}

    def test_log_level(self):
        """Test that the log configuration is parsed."""
        config = Config(io.StringIO(YAML))

        assert config.log.level == logging.DEBUG

    def test_global_accessors(self):
        """Test global_config and safe_read_cfg."""
        assert safe_read_cfg("STORAGE_DRIVER_OSS", "none") == "none"

        config = Config(io.StringIO(YAML))

        assert global_config() is config
        assert safe_read_cfg("STORAGE_DRIVER_OSS") == "aliyun"


class TestStorage:
    """Tests for storage configuration."""

    def test_get_storage(self):
        """Test that per disk keys build a StorageConfig."""
        config = Config(io.StringIO(YAML))

        storage = config.get_storage("oss")

        assert storage == StorageConfig(
            driver="aliyun",
            key="test-key",
            bucket="test-bucket",
            endpoint="oss-cn-hangzhou.aliyuncs.com",
            secure=False,
        )
        assert config.get_storage("OSS") is storage

    def test_get_storage_without_driver(self):
        """Test that a missing driver key is left empty instead of defaulting."""
        config = Config(io.StringIO("STORAGE_BUCKET_OSS: test-bucket\n"))

        assert config.get_storage("oss").driver == ""

    def test_refresh_clears_cache(self):
        """Test that refresh() rebuilds storage configs."""
        config = Config(io.StringIO(YAML))
        config.get_storage("oss")

        config.refresh({"storage_bucket_oss": "other"})

        assert config.get_storage("oss").bucket == "other"

    def test_storage_config_is_immutable(self):
        """Test that bucket switching creates a new config."""
        storage = StorageConfig(driver="aliyun", bucket="a")
        other = storage.with_bucket("b")

        assert storage.bucket == "a"
        assert other.bucket == "b"
        with pytest.raises(AttributeError):
            storage.bucket = "c"


class TestEncryption:
    """Tests for secrets stored in YAML files."""

    def test_secrets_are_encrypted_in_place(self, tmp_path, monkeypatch):
        """Test that plain secrets get encrypted on disk but stay readable."""
        monkeypatch.setenv("CONFIG_ENCRYPTION_KEY", "a-test-encryption-key")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("STORAGE_SECRET_OSS: plain-secret\nSTORAGE_BUCKET_OSS: bucket\n")

        config = Config(str(config_file))

        assert config.get_str("STORAGE_SECRET_OSS") == "plain-secret"
        on_disk = config_file.read_text()
        assert "plain-secret" not in on_disk
        assert "STORAGE_BUCKET_OSS: bucket" in on_disk

        # Reloading decrypts the stored value.
        assert Config(str(config_file)).get_str("STORAGE_SECRET_OSS") == "plain-secret"

    def test_no_key_keeps_file_untouched(self, tmp_path, monkeypatch):
        """Test that nothing is rewritten without an encryption key."""
        monkeypatch.delenv("CONFIG_ENCRYPTION_KEY", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text("STORAGE_SECRET_OSS: plain-secret\n")

        Config(str(config_file))

        assert config_file.read_text() == "STORAGE_SECRET_OSS: plain-secret\n"

    def test_invalid_key_disables_encrypter(self):
        """Test that a malformed Fernet key is tolerated."""
        encrypter = FernetEncrypter("not-a-fernet-key")

        assert encrypter.encrypt("value") == ""
        assert encrypter.decrypt("gAAAAvalue") == "gAAAAvalue"


class TestDotenv:
    """Tests for .env loading."""

    def test_load_dotenv_does_not_override(self, tmp_path, monkeypatch):
        """Test that existing environment variables are kept."""
        env_file = tmp_path / ".env"
        env_file.write_text("STORAGE_DEFAULT=oss\nstorage_root_local=/data\n")
        monkeypatch.setenv("STORAGE_DEFAULT", "local")
        monkeypatch.delenv("STORAGE_ROOT_LOCAL", raising=False)

        Config.load_dotenv(str(env_file))

        assert os.environ["STORAGE_DEFAULT"] == "local"
        assert os.environ["STORAGE_ROOT_LOCAL"] == "/data"
