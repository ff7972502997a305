from .config import (
    Config,
    StorageConfig,

    global_config,
    safe_read_cfg
)

from .log import (
    JsonFormatter,

    init_log_console,
    init_log_file,

    init_log
)
