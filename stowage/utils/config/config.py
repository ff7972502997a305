import base64, dotenv, io, json, logging, os, re

from ruamel.yaml import YAML
from typing import Any

from .encrypt import AbstractEncrypter, FernetEncrypter
from .log import LogConfig
from .storage import StorageConfig

#-----------------------------------------------------------------------------

_global_config = None

#-----------------------------------------------------------------------------

class Config:

    yaml = YAML()

    #-------------------------------------------------

    def __init__(
        self,
        yaml_filenames: str | list[str | io.StringIO] | None = None,
        encrypter: AbstractEncrypter | None = None
    ):
        if isinstance(yaml_filenames, str|io.StringIO):
            self._yaml_filenames = [yaml_filenames]
        elif isinstance(yaml_filenames, list):
            self._yaml_filenames = yaml_filenames
        else:
            self._yaml_filenames = []

        #-------------------------------------------------

        self._raw = {}

        self._storages = {}

        #-------------------------------------------------

        self._encrypter = encrypter
        if not self._encrypter:
            fernet_key = self.get_fernet_key("CONFIG_ENCRYPTION_KEY")
            self._encrypter = FernetEncrypter(fernet_key) if fernet_key else None

        #-------------------------------------------------

        # Load YAML files.
        for yaml_filename in self._yaml_filenames:
            self.load_yaml(yaml_filename)

        self.refresh()

        global _global_config
        _global_config = self

    #-----------------------------------------------------

    def refresh(self, data: dict = {}):
        if data:
            self._raw.update({k.upper(): v for k, v in data.items() if isinstance(k, str)})

        # Clear cached configuration objects to ensure they use updated _raw values
        self._storages = {}

        self.log = LogConfig(
            name        = self.get_str("LOG_NAME"),
            dir         = self.get_str("LOG_DIR"),
            level       = logging.getLevelNamesMapping().get(self.get_str("LOG_LEVEL").strip().upper(), logging.INFO)
        )


    def load_yaml(self, file: str | io.StringIO):
        if not file:
            return

        stream = None

        if isinstance(file, str):
            # Filename.
            try:
                with open(file, "r", encoding="utf-8") as f:
                    s = f.read()
                    stream = io.StringIO(s)

            except Exception as e:
                logging.warning(f"Failed to load YAML file '{file}': {str(e)}")
                return

        elif isinstance(file, io.StringIO):
            stream = file

        if stream is None:
            return

        #-------------------------------------------------

        Config.yaml = YAML()

        modified = False

        data = Config.yaml.load(stream)
        if not isinstance(data, dict):
            return

        for key, value in data.items():
            if not isinstance(key, str):
                continue

            upper_key = key.upper()

            if self._encrypter and isinstance(value, str) and len(value) > 0:
                # Check non-empty strings.

                if self._encrypter.is_encrypted(value):
                    # Decrypt it.
                    self._raw[upper_key] = self._encrypter.decrypt(value)
                    continue

                if re.search(r"_KEY|_PASSWORD|_PASS|_PWD|_SECRET|_SK|_TOKEN", upper_key) and \
                    not upper_key.endswith("_URL") and \
                    not upper_key.endswith("ENCRYPTION_KEY") and \
                    value != "REPLACE_THIS_VALUE_IN_PRODUCTION":

                    # Encrypt it.
                    encrypted = self._encrypter.encrypt(value)
                    if encrypted:
                        data[key] = encrypted
                        if not modified:
                            modified = (encrypted != value)

            self._raw[upper_key] = value

        #-------------------------------------------------

        if isinstance(file, str) and modified:
            try:
                with open(file, "w+t", encoding="utf-8") as f:
                    if f.writable():
                        Config.yaml.dump(data, f)

            except Exception as e:
                logging.warning(f"Failed to update YAML file '{file}': {str(e)}")

    #-----------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        stripped_key = key.strip()
        if not stripped_key:
            return default

        # Check environment variables beforehand.
        s = os.environ.get(stripped_key)
        if s is not None:
            return s

        # Check key in upper case again.
        upper_key = stripped_key.upper()
        s = os.environ.get(upper_key)
        if s is not None:
            return s

        # Then check the configuration variables.
        return self._raw.get(upper_key, default)


    def get_str(self, key: str, default: str = "") -> str:
        s = self.get(key, default)
        if s is None:
            return default

        return s if isinstance(s, str) else str(s)


    def get_int(self, key: str, default: int = 0) -> int:
        obj = self.get(key)

        if isinstance(obj, int):
            return obj

        try:
            n = int(obj)
            return n
        except (TypeError, ValueError):
            return default


    def get_bool(self, key: str, default: bool = False) -> bool:
        obj = self.get(key)

        if isinstance(obj, bool):
            return obj

        if isinstance(obj, str):
            return obj.strip().upper() in ("TRUE", "1", "YES")

        if isinstance(obj, int):
            return obj != 0

        return default


    def get_dict(self, key: str, default: dict | None = None) -> dict:
        obj = self.get(key)

        if isinstance(obj, dict):
            return obj

        if isinstance(obj, str | bytes | bytearray):
            try:
                d = json.loads(obj)
                if isinstance(d, dict):
                    return d
            except ValueError:
                return default

        return default


    def get_list(self, key: str, default: list | None = None) -> list:
        obj = self.get(key)

        if isinstance(obj, list):
            return obj

        if isinstance(obj, str | bytes | bytearray):
            try:
                l = json.loads(obj)
                if isinstance(l, list):
                    return l
            except ValueError:
                # Plain comma separated value, e.g. STORAGE_DISKS=oss,local
                if isinstance(obj, str):
                    return [s.strip() for s in obj.split(",") if s.strip()]
                return default

        return default


    def get_fernet_key(self, key: str) -> str:
        s = self.get_str(key)
        s = s.strip()
        if not s:
            return ""

        if len(s) > 32:
            s = s[:32]

        try:
            result = base64.urlsafe_b64encode(
                s.encode().ljust(32, b"0")
            ).decode()
            return result

        except Exception as e:
            logging.error(str(e), extra={"key": key})
            return ""

    #-----------------------------------------------------

    def get_storage(self, key: str="") -> StorageConfig:
        upper_key = key.strip().upper()
        if upper_key in self._storages:
            return self._storages[upper_key]

        #-------------------------------------------------

        suffix = upper_key
        if suffix:
            suffix = "_" + suffix

        storage_config = StorageConfig(
            driver      = self.get_str(f"STORAGE_DRIVER{suffix}").strip().lower(),
            key         = self.get_str(f"STORAGE_KEY{suffix}"),
            secret      = self.get_str(f"STORAGE_SECRET{suffix}"),
            bucket      = self.get_str(f"STORAGE_BUCKET{suffix}"),
            endpoint    = self.get_str(f"STORAGE_ENDPOINT{suffix}"),
            region      = self.get_str(f"STORAGE_REGION{suffix}"),
            internal    = self.get_bool(f"STORAGE_INTERNAL{suffix}"),
            secure      = self.get_bool(f"STORAGE_SECURE{suffix}", True),
            root        = self.get_str(f"STORAGE_ROOT{suffix}"),
            public_url  = self.get_str(f"STORAGE_PUBLIC_URL{suffix}")
        )

        self._storages[upper_key] = storage_config
        return storage_config

    #-----------------------------------------------------

    def print(self):
        print(f"Configuration loaded from {self._yaml_filenames}:")
        print("----------------------------------------------------------")
        print(f"env             : {os.environ.get('ENV', '').strip().lower()}")
        print(f"debug           : {self.log.level <= logging.DEBUG}")
        self.log.print()

        for name in self.get_list("STORAGE_DISKS", []):
            self.get_storage(str(name)).print()

    #-------------------------------------------------------------------------

    @staticmethod
    def to_masked_str(s: str) -> str:
        n = len(s)
        if n <= 0:
            return ""
        if n < 6:
            return "************"

        return f"{s[:3]}******{s[n-3:]}"

    #-------------------------------------------------------------------------

    @staticmethod
    def load_dotenv(filenames: str | list[str] | None = None):
        if isinstance(filenames, str):
            l = [filenames]
        elif isinstance(filenames, list):
            l = filenames
        else:
            return

        for filename in l:
            filename = filename.strip()
            if not filename:
                continue

            for key, value in dotenv.dotenv_values(filename).items():
                if value:
                    value = value.strip()
                if not value:
                    continue

                key = key.strip()
                if not key:
                    continue

                os.environ.setdefault(key.upper(), value)

    #-------------------------------------------------------------------------

    @staticmethod
    def init(
        yaml_filenames  : str | list[str] | None = None,
        dotenv_filenames: str | list[str] = [".env"],
        log_extra       : dict = {}
    ) -> "Config":
        from ..log import init_log, init_log_console
        init_log_console(extra=log_extra)

        Config.load_dotenv(dotenv_filenames)

        config = Config(yaml_filenames)

        init_log(
            name    = config.log.name,
            dir     = config.log.dir,
            level   = config.log.level,
            extra   = log_extra
        )

        config.print()

        return config

#-----------------------------------------------------------------------------

def global_config() -> Config | None:
    return _global_config

#-----------------------------------------------------------------------------

def safe_read_cfg(key: str, default: str = "") -> str:
    if not _global_config:
        return default

    return _global_config.get_str(key, default)

#-----------------------------------------------------------------------------
