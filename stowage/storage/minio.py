import asyncio
import io
import logging
from datetime import timedelta
from functools import partial
from typing import AsyncIterator, NoReturn, Optional

from minio import Minio
from minio.commonconfig import CopySource
from minio.error import S3Error
from minio.helpers import MIN_PART_SIZE

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

NOT_FOUND_CODES = ("NoSuchKey", "NoSuchObject", "ResourceNotFound")

AUTHORIZATION_CODES = ("InvalidAccessKeyId", "SignatureDoesNotMatch", "ExpiredToken")


def handle_error(err: Exception, path: str) -> NoReturn:
    code = err.code if isinstance(err, S3Error) else err.__class__.__name__

    if code in NOT_FOUND_CODES:
        raise FileNotFound(err, path) from err

    if code in AUTHORIZATION_CODES:
        raise AuthorizationRequired(err, path) from err

    if code == "AccessDenied":
        raise PermissionMissing(err, path) from err

    raise UnknownException(err, code, path) from err

#-----------------------------------------------------------------------------

class MinioStorage(AbstractStorage):
    """
    MinIO storage implementation

    Distinguishes between:
    - endpoint: URL used for API calls (e.g., http://minio:9000 in Docker)
    - public_url: URL handed to browsers (e.g., http://localhost:9000)
    """

    def __init__(self, config: StorageConfig):
        self._config = config

        # Keep the scheme out of the host, it only decides the default of `secure`.
        endpoint = config.endpoint.strip()
        secure = config.secure
        if endpoint.startswith("https://"):
            secure = True
        elif endpoint.startswith("http://"):
            secure = False
        self._host = endpoint.removeprefix("https://").removeprefix("http://").rstrip("/")
        self._secure = secure

        client_kwargs = {
            "endpoint": self._host,
            "access_key": config.key,
            "secret_key": config.secret,
            "secure": secure,
        }

        # Only add region if specified
        if config.region:
            client_kwargs["region"] = config.region

        self._client = Minio(**client_kwargs)

        logger.info(f"MinIO client initialized: host={self._host}, secure={secure}, bucket={config.bucket}")

    #-----------------------------------------------------

    async def _call(self, func, *args, **kwargs):
        # minio SDK is synchronous.
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))


    def bucket(self, name: str) -> "MinioStorage":
        return MinioStorage(self._config.with_bucket(name))


    def driver(self) -> Minio:
        return self._client

    #-----------------------------------------------------

    async def exists(self, location: str, **options) -> ExistsResponse:
        try:
            result = await self._call(
                self._client.stat_object,
                bucket_name=self._config.bucket,
                object_name=location,
                **options
            )
            return ExistsResponse(exists=True, raw=result)

        except Exception as e:
            if isinstance(e, S3Error) and e.code in NOT_FOUND_CODES:
                return ExistsResponse(exists=False, raw=e)

            logger.error(f"Failed to check file on MinIO: {location}: {str(e)}")
            handle_error(e, location)

    #-----------------------------------------------------

    async def get_buffer(self, location: str) -> ContentResponse[bytes]:
        def read_object():
            response = self._client.get_object(bucket_name=self._config.bucket, object_name=location)
            try:
                return response, response.read()
            finally:
                response.close()
                response.release_conn()

        try:
            response, content = await self._call(read_object)
            return ContentResponse(content=content, raw=response)

        except Exception as e:
            logger.error(f"Failed to get file from MinIO: {location}: {str(e)}")
            handle_error(e, location)


    async def get_stream(self, location: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        response = await self._call(
            self._client.get_object,
            bucket_name=self._config.bucket,
            object_name=location
        )

        try:
            while True:
                chunk = await self._call(response.read, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            response.close()
            response.release_conn()

    #-----------------------------------------------------

    async def put(self, location: str, content: Content, **options) -> Response:
        data = await read_content(content)

        # MinIO needs the length up front, except for multipart uploads of streams.
        part_size = 0
        if isinstance(data, AsyncReader):
            data = data.blocking(asyncio.get_event_loop())

        if isinstance(data, bytes):
            length = len(data)
            data = io.BytesIO(data)
        elif hasattr(data, "seek") and hasattr(data, "tell"):
            data.seek(0, 2)
            length = data.tell()
            data.seek(0)
        else:
            length = -1
            part_size = MIN_PART_SIZE

        try:
            result = await self._call(
                self._client.put_object,
                bucket_name=self._config.bucket,
                object_name=location,
                data=data,
                length=length,
                part_size=part_size,
                **options
            )

            logger.info(f"File uploaded to MinIO successfully: {location}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to upload to MinIO: {location}: {str(e)}")
            handle_error(e, location)


    async def delete(self, location: str, **options) -> Response:
        try:
            result = await self._call(
                self._client.remove_object,
                bucket_name=self._config.bucket,
                object_name=location,
                **options
            )

            logger.info(f"File deleted from MinIO successfully: {location}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to delete from MinIO: {location}: {str(e)}")
            handle_error(e, location)


    async def copy(self, src: str, dest: str, dest_bucket: Optional[str] = None, **options) -> Response:
        try:
            result = await self._call(
                self._client.copy_object,
                bucket_name=dest_bucket or self._config.bucket,
                object_name=dest,
                source=CopySource(bucket_name=self._config.bucket, object_name=src),
                **options
            )

            logger.info(f"File copied on MinIO: {src} -> {dest}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to copy on MinIO: {src} -> {dest}: {str(e)}")
            handle_error(e, src)

    #-----------------------------------------------------

    def get_url(self, location: str) -> str:
        if self._config.public_url:
            base = self._config.public_url.rstrip("/")
        else:
            base = f"{'https' if self._secure else 'http'}://{self._host}"

        return f"{base}/{self._config.bucket}/{location}"


    async def get_signed_url(
        self,
        location: str,
        expiry: int = DEFAULT_SIGNED_URL_EXPIRY,
        response_content_type: Optional[str] = None,
        **options
    ) -> SignedUrlResponse:
        if response_content_type:
            options["response_headers"] = {
                "response-content-type": response_content_type,
                "response-content-disposition": "inline"
            }

        try:
            url = await self._call(
                self._client.presigned_get_object,
                bucket_name=self._config.bucket,
                object_name=location,
                expires=timedelta(seconds=expiry),
                **options
            )

            return SignedUrlResponse(signed_url=url, raw=url)

        except Exception as e:
            logger.error(f"Failed to generate MinIO signed URL: {location}: {str(e)}")
            handle_error(e, location)


    async def get_stat(self, location: str) -> StatResponse:
        try:
            stat = await self._call(
                self._client.stat_object,
                bucket_name=self._config.bucket,
                object_name=location
            )

            return StatResponse(size=int(stat.size), modified=stat.last_modified, raw=stat)

        except Exception as e:
            logger.error(f"Failed to get file info from MinIO: {location}: {str(e)}")
            handle_error(e, location)

#-----------------------------------------------------------------------------
