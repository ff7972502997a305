import base64, datetime, json, logging, os

#-----------------------------------------------------------------------------

class JsonEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, (datetime.datetime, datetime.date)):
            return o.isoformat()

        if isinstance(o, bytes):
            return base64.urlsafe_b64encode(o).decode()

        if isinstance(o, os.PathLike):
            return os.fspath(o)

        return str(o)

#-----------------------------------------------------------------------------

class JsonFormatter(logging.Formatter):
    def __init__(self, extra: dict | None = None):
        super().__init__()

        self._extra = extra

        # Attributes of every LogRecord, not worth repeating in the output.
        self._predefined_fields = {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "exc_info",
            "exc_text",
            "stack_info",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "taskName",
            "exception"
        }

    #-----------------------------------------------------

    def format(self, record: logging.LogRecord):
        json_record = {
            "time"  : self.formatTime(record, self.datefmt),
            "level" : record.levelname,
            "logger": record.name,
            "msg"   : record.getMessage()
        }

        #-------------------------------------------------
        # Exception information.

        if record.exc_info:
            json_record["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            json_record["stack_info"] = record.stack_info

        #-------------------------------------------------
        # Location.

        if record.funcName and record.funcName != "<module>":
            json_record["function"] = record.funcName

        filename = record.pathname.removeprefix(os.getcwd()).removeprefix(os.sep)
        json_record["file"] = f"{filename}:{record.lineno}"

        if record.module:
            json_record["module"] = record.module

        #-------------------------------------------------
        # Fields passed through `extra=`.

        for k, v in record.__dict__.items():
            if k not in self._predefined_fields:
                json_record[k] = v

        if self._extra:
            json_record.update(self._extra)

        return json.dumps(json_record, ensure_ascii=False, separators=(",", ":"), cls=JsonEncoder)

#-----------------------------------------------------------------------------

def init_log_console(level: int = logging.INFO, extra: dict = {}):
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter(extra))

    logging.root.handlers = [stream_handler]
    logging.root.setLevel(level=level)

#-----------------------------------------------------------------------------

def init_log_file(name: str, dir: str, level: int = logging.INFO, extra: dict = {}):
    if dir:
        os.makedirs(dir, exist_ok=True)

    formatter = JsonFormatter(extra)

    now = datetime.datetime.now()
    file_handler = logging.FileHandler(
        os.path.join(dir, f"{now.strftime('%Y-%m-%d')}_{name}_{now.strftime('%H%M%S_%f')}.log"),
        mode="w+"
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)

    logging.root.handlers = [file_handler, stream_handler]
    logging.root.setLevel(level=level)

#-----------------------------------------------------------------------------

def init_log(name: str = "", dir: str = "", level: int = logging.INFO, extra: dict = {}):
    if name:
        init_log_file(name, dir, level, extra)
    else:
        init_log_console(level, extra)

#-----------------------------------------------------------------------------
