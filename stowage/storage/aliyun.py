import asyncio
import logging
import warnings
from email.utils import parsedate_to_datetime
from functools import partial
from pathlib import Path
from typing import AsyncIterator, NoReturn, Optional

warnings.filterwarnings("ignore", category=SyntaxWarning, module="oss2")
import oss2
from oss2.exceptions import OssError

from ..utils.config.storage import StorageConfig
from .abstract import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_SIGNED_URL_EXPIRY,
    AbstractStorage,
    AsyncReader,
    Content,
    read_content,
)
from .exceptions import (
    AuthorizationRequired,
    FileNotFound,
    InvalidConfig,
    PermissionMissing,
    UnknownException,
)
from .responses import (
    ContentResponse,
    ExistsResponse,
    Response,
    SignedUrlResponse,
    StatResponse,
)

logger = logging.getLogger(__name__)

#-----------------------------------------------------------------------------

AUTHORIZATION_CODES = (
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "SecurityTokenExpired",
    "InvalidSecurityToken",
)


def handle_error(err: Exception, path: str) -> NoReturn:
    if isinstance(err, OssError):
        status = err.status
        code = err.code or err.__class__.__name__
    else:
        status = None
        code = err.__class__.__name__

    # A 404 on a missing bucket must not look like a missing file.
    if code == "NoSuchKey" or (status == 404 and code != "NoSuchBucket"):
        raise FileNotFound(err, path) from err

    if code in AUTHORIZATION_CODES:
        raise AuthorizationRequired(err, path) from err

    if status == 403:
        raise PermissionMissing(err, path) from err

    raise UnknownException(err, code, path) from err

#-----------------------------------------------------------------------------

class AliyunStorage(AbstractStorage):
    """Aliyun OSS storage implementation"""

    def __init__(self, config: StorageConfig):
        self._config = config
        self._host = self._build_host(config)

        self._auth = oss2.Auth(config.key, config.secret)
        self._bucket = oss2.Bucket(self._auth, f"{config.protocol}://{self._host}", config.bucket)

        logger.info(f"Aliyun OSS client initialized: bucket={config.bucket}, endpoint={self._host}")

    #-----------------------------------------------------

    @staticmethod
    def _build_host(config: StorageConfig) -> str:
        """
        Resolve the OSS host name

        An explicit endpoint wins. Otherwise it is derived from the region,
        e.g. oss-cn-hangzhou -> oss-cn-hangzhou.aliyuncs.com, or
        oss-cn-hangzhou-internal.aliyuncs.com inside Aliyun's network.
        """
        endpoint = config.endpoint.strip()
        if endpoint:
            return endpoint.removeprefix("https://").removeprefix("http://").rstrip("/")

        region = config.region.strip()
        if not region:
            raise InvalidConfig("Aliyun OSS requires an endpoint or a region")

        if not region.startswith("oss-"):
            region = f"oss-{region}"
        if config.internal:
            region = f"{region}-internal"

        return f"{region}.aliyuncs.com"


    async def _call(self, func, *args, **kwargs):
        # oss2 is synchronous.
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    #-----------------------------------------------------

    def bucket(self, name: str) -> "AliyunStorage":
        return AliyunStorage(self._config.with_bucket(name))


    def driver(self) -> oss2.Bucket:
        return self._bucket

    #-----------------------------------------------------

    async def exists(self, location: str, **options) -> ExistsResponse:
        try:
            result = await self._call(self._bucket.head_object, location, **options)
            return ExistsResponse(exists=True, raw=result)

        except Exception as e:
            if isinstance(e, OssError) and e.status == 404 and e.code != "NoSuchBucket":
                return ExistsResponse(exists=False, raw=e)

            logger.error(f"Failed to check file on OSS: {location}: {str(e)}")
            handle_error(e, location)

    #-----------------------------------------------------

    async def get_buffer(self, location: str) -> ContentResponse[bytes]:
        def read_object():
            result = self._bucket.get_object(location)
            return result, result.read()

        try:
            result, content = await self._call(read_object)
            return ContentResponse(content=content, raw=result)

        except Exception as e:
            logger.error(f"Failed to get file from OSS: {location}: {str(e)}")
            handle_error(e, location)


    async def get_stream(self, location: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        result = await self._call(self._bucket.get_object, location)

        try:
            while True:
                chunk = await self._call(result.read, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            result.close()

    #-----------------------------------------------------

    async def put(self, location: str, content: Content, **options) -> Response:
        if not isinstance(content, Path):
            content = await read_content(content)

        if isinstance(content, AsyncReader):
            # An iterable body makes oss2 send a chunked upload.
            content = iter(content.blocking(asyncio.get_event_loop()))

        try:
            if isinstance(content, Path):
                result = await self._call(self._bucket.put_object_from_file, location, str(content), **options)
            else:
                result = await self._call(self._bucket.put_object, location, content, **options)

            logger.info(f"File uploaded to OSS successfully: {location}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to upload to OSS: {location}: {str(e)}")
            handle_error(e, location)


    async def delete(self, location: str, **options) -> Response:
        try:
            result = await self._call(self._bucket.delete_object, location, **options)

            logger.info(f"File deleted from OSS successfully: {location}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to delete from OSS: {location}: {str(e)}")
            handle_error(e, location)


    async def copy(self, src: str, dest: str, dest_bucket: Optional[str] = None, **options) -> Response:
        # OSS copies are issued against the target bucket, naming the source bucket explicitly.
        target = self if dest_bucket is None else self.bucket(dest_bucket)

        try:
            result = await self._call(
                target.driver().copy_object,
                self._config.bucket,
                src,
                dest,
                **options
            )

            logger.info(f"File copied on OSS: {self._config.bucket}/{src} -> {target._config.bucket}/{dest}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to copy on OSS: {src} -> {dest}: {str(e)}")
            handle_error(e, src)

    #-----------------------------------------------------

    def get_url(self, location: str) -> str:
        return f"{self._config.protocol}://{self._config.bucket}.{self._host}/{location}"


    async def get_signed_url(
        self,
        location: str,
        expiry: int = DEFAULT_SIGNED_URL_EXPIRY,
        method: str = "GET",
        **options
    ) -> SignedUrlResponse:
        try:
            url = await self._call(self._bucket.sign_url, method, location, expiry, **options)
            return SignedUrlResponse(signed_url=url, raw=url)

        except Exception as e:
            logger.error(f"Failed to generate signed URL: {location}: {str(e)}")
            handle_error(e, location)


    async def get_stat(self, location: str) -> StatResponse:
        try:
            result = await self._call(self._bucket.head_object, location)

            return StatResponse(
                size        = int(result.headers["Content-Length"]),
                modified    = parsedate_to_datetime(result.headers["Last-Modified"]),
                raw         = result
            )

        except Exception as e:
            logger.error(f"Failed to get file info from OSS: {location}: {str(e)}")
            handle_error(e, location)

#-----------------------------------------------------------------------------
