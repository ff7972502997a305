from .config import (
    Config,

    global_config,
    safe_read_cfg
)

from .encrypt import AbstractEncrypter, FernetEncrypter
from .log import LogConfig
from .storage import StorageConfig
