import logging
from typing import Any, AsyncIterator, NoReturn, Optional

import aioboto3
from botocore.exceptions import ClientError, NoCredentialsError

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

NOT_FOUND_CODES = ("NoSuchKey", "NotFound", "404")

AUTHORIZATION_CODES = (
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
)


def _error_code(err: Exception) -> str:
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Code", "") or "Unknown"
    return err.__class__.__name__


def _error_status(err: Exception) -> Optional[int]:
    if isinstance(err, ClientError):
        return err.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return None


def handle_error(err: Exception, path: str) -> NoReturn:
    code = _error_code(err)

    if code in NOT_FOUND_CODES:
        raise FileNotFound(err, path) from err

    if code in AUTHORIZATION_CODES or isinstance(err, NoCredentialsError):
        raise AuthorizationRequired(err, path) from err

    if code == "AccessDenied" or _error_status(err) == 403:
        raise PermissionMissing(err, path) from err

    raise UnknownException(err, code, path) from err

#-----------------------------------------------------------------------------

class AwsStorage(AbstractStorage):
    """AWS S3 storage implementation (also works with S3 compatible endpoints)"""

    def __init__(self, config: StorageConfig):
        self._config = config

        self.session = aioboto3.Session(
            aws_access_key_id       = config.key or None,
            aws_secret_access_key   = config.secret or None,
            region_name             = config.region or None
        )

        self._client_params = {}

        # Add endpoint URL if provided (for MinIO compatibility)
        if config.endpoint:
            endpoint = config.endpoint
            if "://" not in endpoint:
                endpoint = f"{config.protocol}://{endpoint}"
            self._client_params["endpoint_url"] = endpoint

        logger.info(f"S3 session initialized: bucket={config.bucket}, region={config.region}")

    #-----------------------------------------------------

    def _client(self):
        return self.session.client("s3", **self._client_params)


    def bucket(self, name: str) -> "AwsStorage":
        return AwsStorage(self._config.with_bucket(name))


    def driver(self) -> Any:
        return self.session

    #-----------------------------------------------------

    async def exists(self, location: str, **options) -> ExistsResponse:
        try:
            async with self._client() as client:
                result = await client.head_object(Bucket=self._config.bucket, Key=location, **options)
            return ExistsResponse(exists=True, raw=result)

        except Exception as e:
            if _error_code(e) in NOT_FOUND_CODES or _error_status(e) == 404:
                return ExistsResponse(exists=False, raw=e)

            logger.error(f"Failed to check file on S3: {location}: {str(e)}")
            handle_error(e, location)

    #-----------------------------------------------------

    async def get_buffer(self, location: str) -> ContentResponse[bytes]:
        try:
            async with self._client() as client:
                response = await client.get_object(Bucket=self._config.bucket, Key=location)

                async with response["Body"] as stream:
                    content = await stream.read()

            return ContentResponse(content=content, raw=response)

        except Exception as e:
            logger.error(f"Failed to get file from S3: {location}: {str(e)}")
            handle_error(e, location)


    async def get_stream(self, location: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        async with self._client() as client:
            response = await client.get_object(Bucket=self._config.bucket, Key=location)

            async with response["Body"] as stream:
                while True:
                    chunk = await stream.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk

    #-----------------------------------------------------

    async def put(self, location: str, content: Content, **options) -> Response:
        body = await read_content(content)

        try:
            async with self._client() as client:
                if isinstance(body, AsyncReader):
                    # Managed multipart upload, reading the stream part by part.
                    result = await client.upload_fileobj(
                        body,
                        self._config.bucket,
                        location,
                        ExtraArgs = options or None
                    )
                else:
                    result = await client.put_object(
                        Bucket  = self._config.bucket,
                        Key     = location,
                        Body    = body,
                        **options
                    )

            logger.info(f"File uploaded to S3 successfully: {location}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to upload to S3: {location}: {str(e)}")
            handle_error(e, location)


    async def delete(self, location: str, **options) -> Response:
        try:
            async with self._client() as client:
                result = await client.delete_object(Bucket=self._config.bucket, Key=location, **options)

            logger.info(f"File deleted from S3 successfully: {location}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to delete from S3: {location}: {str(e)}")
            handle_error(e, location)


    async def copy(self, src: str, dest: str, dest_bucket: Optional[str] = None, **options) -> Response:
        try:
            async with self._client() as client:
                result = await client.copy_object(
                    Bucket      = dest_bucket or self._config.bucket,
                    Key         = dest,
                    CopySource  = {"Bucket": self._config.bucket, "Key": src},
                    **options
                )

            logger.info(f"File copied on S3: {src} -> {dest}")

            return Response(raw=result)

        except Exception as e:
            logger.error(f"Failed to copy on S3: {src} -> {dest}: {str(e)}")
            handle_error(e, src)

    #-----------------------------------------------------

    def get_url(self, location: str) -> str:
        if self._config.public_url:
            return f"{self._config.public_url.rstrip('/')}/{location}"

        endpoint = self._client_params.get("endpoint_url")
        if endpoint:
            return f"{endpoint.rstrip('/')}/{self._config.bucket}/{location}"

        region = self._config.region or "us-east-1"
        return f"{self._config.protocol}://{self._config.bucket}.s3.{region}.amazonaws.com/{location}"


    async def get_signed_url(
        self,
        location: str,
        expiry: int = DEFAULT_SIGNED_URL_EXPIRY,
        response_content_type: Optional[str] = None,
        **options
    ) -> SignedUrlResponse:
        params = {
            "Bucket": self._config.bucket,
            "Key": location,
        }

        # Add content type if provided for proper browser rendering
        if response_content_type:
            params["ResponseContentType"] = response_content_type

        params.update(options)

        try:
            async with self._client() as client:
                url = await client.generate_presigned_url(
                    "get_object",
                    Params=params,
                    ExpiresIn=expiry
                )

            return SignedUrlResponse(signed_url=url, raw=url)

        except Exception as e:
            logger.error(f"Failed to generate signed URL: {location}: {str(e)}")
            handle_error(e, location)


    async def get_stat(self, location: str) -> StatResponse:
        try:
            async with self._client() as client:
                response = await client.head_object(Bucket=self._config.bucket, Key=location)

            return StatResponse(
                size        = int(response["ContentLength"]),
                modified    = response["LastModified"],
                raw         = response
            )

        except Exception as e:
            logger.error(f"Failed to get file info from S3: {location}: {str(e)}")
            handle_error(e, location)

#-----------------------------------------------------------------------------
