from typing import Optional

#-----------------------------------------------------------------------------

class StorageException(Exception):
    """
    Base class of every error raised through the storage contract

    Attributes:
        cause: Original backend error (None when raised by stowage itself)
        code: Backend specific error code, or a stowage code
        path: Location involved in the failed operation
    """

    default_code = "E_STORAGE"

    def __init__(
        self,
        message : str,
        cause   : Optional[BaseException] = None,
        code    : str = "",
        path    : str = ""
    ):
        super().__init__(message)

        self.cause  = cause
        self.code   = code or self.default_code
        self.path   = path

#-----------------------------------------------------------------------------

class FileNotFound(StorageException):
    default_code = "E_FILE_NOT_FOUND"

    def __init__(self, cause: Optional[BaseException], path: str):
        super().__init__(f"The file {path} doesn't exist", cause, path=path)


class UnknownException(StorageException):
    default_code = "E_UNKNOWN"

    def __init__(self, cause: Optional[BaseException], code: str, path: str):
        super().__init__(
            f"An unknown error happened with the file {path}. "
            f"Please open an issue with the error code: {code}. "
            f"Original error: {cause}",
            cause,
            code,
            path
        )


class AuthorizationRequired(StorageException):
    default_code = "E_AUTHORIZATION_REQUIRED"

    def __init__(self, cause: Optional[BaseException], path: str):
        super().__init__(f"Unauthorized to access file {path}", cause, path=path)


class PermissionMissing(StorageException):
    default_code = "E_PERMISSION_MISSING"

    def __init__(self, cause: Optional[BaseException], path: str):
        super().__init__(f"Missing permission for file {path}", cause, path=path)


class WrongKeyPath(StorageException):
    default_code = "E_WRONG_KEY_PATH"

    def __init__(self, path: str):
        super().__init__(f"The path {path} points outside of the storage root", path=path)

#-----------------------------------------------------------------------------

class MethodNotSupported(StorageException):
    default_code = "E_METHOD_NOT_SUPPORTED"

    def __init__(self, method: str, driver: str):
        super().__init__(f"Method {method} is not supported for the driver {driver}")

        self.method = method
        self.driver = driver


class InvalidConfig(StorageException):
    default_code = "E_INVALID_CONFIG"

    def __init__(self, message: str):
        super().__init__(message)

    @classmethod
    def missing_disk_name(cls) -> "InvalidConfig":
        return cls("Make sure to define a default disk name inside config file")

    @classmethod
    def missing_disk_config(cls, name: str) -> "InvalidConfig":
        return cls(f"Make sure to define config for {name} disk")

    @classmethod
    def missing_disk_driver(cls, name: str) -> "InvalidConfig":
        return cls(f"Make sure to define driver for {name} disk")


class DriverNotSupported(StorageException):
    default_code = "E_DRIVER_NOT_SUPPORTED"

    def __init__(self, driver: str):
        super().__init__(
            f"Driver {driver} is not supported. "
            f"Register it with StorageManager.extend() first"
        )

        self.driver = driver

#-----------------------------------------------------------------------------
