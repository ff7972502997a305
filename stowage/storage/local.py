import asyncio
import logging
import shutil
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import AsyncIterator, NoReturn, Optional

from ..utils.config.storage import StorageConfig
from .abstract import (
    DEFAULT_CHUNK_SIZE,
    AbstractStorage,
    AsyncReader,
    Content,
    read_content,
)
from .exceptions import (
    FileNotFound,
    MethodNotSupported,
    PermissionMissing,
    UnknownException,
    WrongKeyPath,
)
from .responses import (
    ContentResponse,
    ExistsResponse,
    Response,
    StatResponse,
)

logger = logging.getLogger(__name__)

#-----------------------------------------------------------------------------

def handle_error(err: Exception, path: str) -> NoReturn:
    if isinstance(err, FileNotFoundError):
        raise FileNotFound(err, path) from err

    if isinstance(err, PermissionError):
        raise PermissionMissing(err, path) from err

    raise UnknownException(err, err.__class__.__name__, path) from err

#-----------------------------------------------------------------------------

class LocalStorage(AbstractStorage):
    """
    Local filesystem storage implementation

    Stores files in a local directory without requiring external services.
    Suitable for single-instance deployments and development environments.
    Buckets and signed URLs have no meaning here and are not supported.
    """

    def __init__(self, config: StorageConfig):
        self._config = config
        self.root = Path(config.root or "./.stowage/storage/").resolve()

        # Ensure base directory exists
        self.root.mkdir(parents=True, exist_ok=True)

        logger.info(f"Local storage initialized: root={self.root}")

    #-----------------------------------------------------

    def _full_path(self, location: str) -> Path:
        """
        Resolve a key under the root directory

        Raises:
            WrongKeyPath: The key escapes the root (e.g. "../secret")
        """
        path = (self.root / location.lstrip("/")).resolve()
        if path != self.root and self.root not in path.parents:
            raise WrongKeyPath(location)

        return path


    async def _call(self, func, *args, **kwargs):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))


    def driver(self) -> Path:
        return self.root

    #-----------------------------------------------------

    async def exists(self, location: str, **options) -> ExistsResponse:
        path = self._full_path(location)

        try:
            exists = await self._call(path.is_file)
            return ExistsResponse(exists=exists, raw=str(path))

        except Exception as e:
            handle_error(e, location)

    #-----------------------------------------------------

    async def get_buffer(self, location: str) -> ContentResponse[bytes]:
        path = self._full_path(location)

        try:
            content = await self._call(path.read_bytes)
            return ContentResponse(content=content, raw=str(path))

        except Exception as e:
            logger.error(f"Failed to read file from local storage: {path}: {str(e)}")
            handle_error(e, location)


    async def get_stream(self, location: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        path = self._full_path(location)

        f = await self._call(open, path, "rb")
        try:
            while True:
                chunk = await self._call(f.read, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            f.close()

    #-----------------------------------------------------

    async def put(self, location: str, content: Content, **options) -> Response:
        path = self._full_path(location)
        data = await read_content(content)
        if isinstance(data, AsyncReader):
            data = data.blocking(asyncio.get_event_loop())

        def write_file():
            # Create parent directories
            path.parent.mkdir(parents=True, exist_ok=True)

            if isinstance(data, bytes):
                path.write_bytes(data)
                return

            with open(path, "wb") as f:
                shutil.copyfileobj(data, f, DEFAULT_CHUNK_SIZE)

        try:
            await self._call(write_file)

            logger.info(f"File saved to local storage: {path}")

            return Response(raw=str(path))

        except Exception as e:
            logger.error(f"Failed to save file to local storage: {path}: {str(e)}")
            handle_error(e, location)


    async def delete(self, location: str, **options) -> Response:
        path = self._full_path(location)

        try:
            await self._call(path.unlink, missing_ok=True)

            logger.info(f"File deleted from local storage: {path}")

            return Response(raw=str(path))

        except Exception as e:
            logger.error(f"Failed to delete file from local storage: {path}: {str(e)}")
            handle_error(e, location)


    async def copy(self, src: str, dest: str, dest_bucket: Optional[str] = None, **options) -> Response:
        if dest_bucket is not None:
            raise MethodNotSupported("copy to another bucket", self.get_storage_type())

        src_path = self._full_path(src)
        dest_path = self._full_path(dest)

        def copy_file():
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            return shutil.copy2(src_path, dest_path)

        try:
            result = await self._call(copy_file)

            logger.info(f"File copied on local storage: {src_path} -> {dest_path}")

            return Response(raw=str(result))

        except Exception as e:
            logger.error(f"Failed to copy file on local storage: {src_path} -> {dest_path}: {str(e)}")
            handle_error(e, src)

    #-----------------------------------------------------

    def get_url(self, location: str) -> str:
        key = location.lstrip("/")

        if self._config.public_url:
            return f"{self._config.public_url.rstrip('/')}/{key}"

        return (self.root / key).as_uri()


    async def get_stat(self, location: str) -> StatResponse:
        path = self._full_path(location)

        try:
            stat = await self._call(path.stat)

            return StatResponse(
                size        = stat.st_size,
                modified    = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                raw         = stat
            )

        except Exception as e:
            logger.error(f"Failed to get file info from local storage: {path}: {str(e)}")
            handle_error(e, location)

#-----------------------------------------------------------------------------
