import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Any, AsyncIterable, AsyncIterator, Iterator, Optional, Union

from deprecated import deprecated

from .exceptions import MethodNotSupported, StorageException
from .responses import (
    ContentResponse,
    ExistsResponse,
    Response,
    SignedUrlResponse,
    StatResponse,
)

logger = logging.getLogger(__name__)

#-----------------------------------------------------------------------------

DEFAULT_CHUNK_SIZE          = 64 * 1024
DEFAULT_SIGNED_URL_EXPIRY   = 900

Content = Union[bytes, bytearray, str, Path, IO[bytes], AsyncIterable[bytes]]

#-----------------------------------------------------------------------------

class AbstractStorage(ABC):
    """
    Contract shared by all storage drivers (Aliyun OSS, S3, MinIO, local disk)

    Drivers keep their configuration and native client for their whole
    lifetime and never mutate them while serving a call, so one instance can
    be shared by concurrent callers. Use bucket() to get a handle on another
    bucket instead of switching the current one.

    Every failure is raised as a StorageException subclass. The only
    exception to this rule is get_stream(): errors happening while the
    stream is consumed are raised as-is by the iterator.
    """

    #-----------------------------------------------------

    @abstractmethod
    async def exists(self, location: str, **options) -> ExistsResponse:
        """
        Determine if a file exists

        A missing file is not an error: it returns exists=False.
        Transport, authorization and permission errors are raised.
        """

    async def get(self, location: str, encoding: str = "utf-8") -> ContentResponse[str]:
        """
        Return the file contents decoded as text
        """
        result = await self.get_buffer(location)
        return ContentResponse(content=result.content.decode(encoding), raw=result.raw)

    @abstractmethod
    async def get_buffer(self, location: str) -> ContentResponse[bytes]:
        """
        Return the file contents as bytes

        Raises:
            FileNotFound: The location doesn't exist
        """

    @abstractmethod
    def get_stream(self, location: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """
        Return an async iterator over the file contents

        Nothing is requested until the first chunk is awaited, and each
        following chunk is read only when the consumer asks for it.
        """

    @abstractmethod
    async def put(self, location: str, content: Content, **options) -> Response:
        """
        Create or overwrite a file

        Missing intermediate directories are created on the fly.

        Args:
            location: File key/path
            content: bytes, text (encoded as UTF-8), a binary file object,
                a pathlib.Path to upload, or an async iterable of bytes
                (e.g. another driver's get_stream(), sent chunk by chunk)
            options: Driver specific upload options (headers, metadata...)
        """

    @deprecated(version="0.2.0", reason="put() accepts streams directly")
    async def put_stream(self, location: str, stream: Content, **options) -> Response:
        return await self.put(location, stream, **options)

    @abstractmethod
    async def delete(self, location: str, **options) -> Response:
        """
        Delete a file. Deleting a missing file is not an error.
        """

    @abstractmethod
    async def copy(self, src: str, dest: str, dest_bucket: Optional[str] = None, **options) -> Response:
        """
        Copy a file to another location, optionally into another bucket
        """

    async def move(self, src: str, dest: str, dest_bucket: Optional[str] = None, **options) -> Response:
        """
        Move a file by copying it then deleting the source

        This is not atomic. When the delete fails, the copy at `dest` is kept
        and the delete error is raised: the caller has to reconcile.
        """
        copied = await self.copy(src, dest, dest_bucket, **options)

        try:
            deleted = await self.delete(src)
        except StorageException:
            logger.warning(f"File copied to {dest} but source {src} could not be deleted")
            raise

        return Response(raw={"copy": copied.raw, "delete": deleted.raw})

    @abstractmethod
    def get_url(self, location: str) -> str:
        """
        Return the public URL of a file

        Built from the configuration only: no request is sent, so neither
        existence nor access rights are checked.
        """

    async def get_signed_url(
        self,
        location: str,
        expiry: int = DEFAULT_SIGNED_URL_EXPIRY,
        **options
    ) -> SignedUrlResponse:
        """
        Return a URL granting access to a file for `expiry` seconds
        """
        raise MethodNotSupported("get_signed_url", self.get_storage_type())

    @abstractmethod
    async def get_stat(self, location: str) -> StatResponse:
        """
        Return the file size and last modification date
        """

    def bucket(self, name: str) -> "AbstractStorage":
        """
        Return a new driver instance working on another bucket
        """
        raise MethodNotSupported("bucket", self.get_storage_type())

    @abstractmethod
    def driver(self) -> Any:
        """
        Return the native client used under the hood
        """

    #-----------------------------------------------------

    def get_storage_type(self) -> str:
        return self.__class__.__name__.lower().removesuffix("storage")

#-----------------------------------------------------------------------------

async def read_content(content: Content) -> Union[bytes, IO[bytes], "AsyncReader"]:
    """
    Normalize upload content

    Returns bytes, a binary file object, or an AsyncReader for async
    iterables. Streams are never joined: drivers upload them chunk by chunk.
    """
    if isinstance(content, bytes):
        return content

    if isinstance(content, bytearray):
        return bytes(content)

    if isinstance(content, str):
        return content.encode("utf-8")

    if isinstance(content, Path):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, content.read_bytes)

    if hasattr(content, "__aiter__"):
        return AsyncReader(content)

    if hasattr(content, "read"):
        return content

    raise TypeError(f"Unsupported content type: {type(content).__name__}")

#-----------------------------------------------------------------------------

class AsyncReader:
    """
    Binary file object over an async iterable of bytes

    Chunks are pulled from the iterable only when read() needs them, so at
    most one read size worth of data is buffered.
    """

    def __init__(self, stream: AsyncIterable[bytes]):
        self._iterator = stream.__aiter__()
        self._buffer = bytearray()
        self._eof = False


    async def read(self, size: int = -1) -> bytes:
        while not self._eof and (size < 0 or len(self._buffer) < size):
            try:
                chunk = await self._iterator.__anext__()
            except StopAsyncIteration:
                self._eof = True
                break

            self._buffer += chunk

        if size < 0 or size > len(self._buffer):
            size = len(self._buffer)

        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data


    def blocking(self, loop: asyncio.AbstractEventLoop) -> "BlockingReader":
        return BlockingReader(self, loop)


class BlockingReader:
    """
    Synchronous view of an AsyncReader, for SDKs running in executor threads

    read() waits for the async read scheduled on `loop`: never call it from
    the loop's own thread.
    """

    def __init__(self, reader: AsyncReader, loop: asyncio.AbstractEventLoop):
        self._reader = reader
        self._loop = loop


    def read(self, size: int = -1) -> bytes:
        future = asyncio.run_coroutine_threadsafe(self._reader.read(size), self._loop)
        return future.result()


    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(DEFAULT_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk

#-----------------------------------------------------------------------------
