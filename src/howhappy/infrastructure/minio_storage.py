"""MinIO implementation of the ObjectStore interface."""

import io
import logging
from datetime import timedelta

from minio import Minio
from minio.error import S3Error

from howhappy.exceptions import StorageError
from howhappy.infrastructure.interfaces import ObjectStore

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "NoSuchObject", "NotFound"}


class MinioStorage(ObjectStore):
    """Handles object storage operations using MinIO."""

    def __init__(self, client: Minio, bucket_name: str):
        self._client = client
        self._bucket_name = bucket_name

    def ensure_bucket(self) -> None:
        try:
            if not self._client.bucket_exists(self._bucket_name):
                self._client.make_bucket(self._bucket_name)
                logger.info("Bucket created", extra={"bucket_name": self._bucket_name})
            else:
                logger.info("Bucket already exists", extra={"bucket_name": self._bucket_name})
        except S3Error as e:
            # A concurrent creator won the race.
            if e.code in {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}:
                return
            logger.exception("MinIO bucket setup failed", extra={"bucket_name": self._bucket_name})
            raise StorageError(self._bucket_name, "ensure_bucket", e) from e
        except Exception as e:
            logger.exception("MinIO bucket setup failed", extra={"bucket_name": self._bucket_name})
            raise StorageError(self._bucket_name, "ensure_bucket", e) from e

    def presign_upload(self, key: str, ttl: timedelta) -> str:
        try:
            return self._client.presigned_put_object(self._bucket_name, key, expires=ttl)
        except Exception as e:
            logger.exception("MinIO presign upload failed", extra={"object_name": key})
            raise StorageError(key, "presign_upload", e) from e

    def presign_download(self, key: str, ttl: timedelta) -> str:
        try:
            return self._client.presigned_get_object(self._bucket_name, key, expires=ttl)
        except Exception as e:
            logger.exception("MinIO presign download failed", extra={"object_name": key})
            raise StorageError(key, "presign_download", e) from e

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self._client.put_object(
                bucket_name=self._bucket_name,
                object_name=key,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
            logger.info(
                "File uploaded to MinIO",
                extra={"bucket_name": self._bucket_name, "object_name": key, "size": len(data)},
            )
        except Exception as e:
            logger.exception("MinIO upload failed", extra={"object_name": key})
            raise StorageError(key, "put", e) from e

    def get(self, key: str) -> bytes:
        try:
            response = self._client.get_object(self._bucket_name, key)
            try:
                data = response.data
            finally:
                response.close()
                response.release_conn()
            logger.info(
                "File downloaded from MinIO",
                extra={"bucket_name": self._bucket_name, "object_name": key},
            )
            return data
        except Exception as e:
            logger.exception("MinIO download failed", extra={"object_name": key})
            raise StorageError(key, "get", e) from e

    def delete(self, key: str) -> None:
        try:
            self._client.remove_object(self._bucket_name, key)
            logger.info("File removed from MinIO", extra={"object_name": key})
        except Exception as e:
            logger.exception("MinIO delete failed", extra={"object_name": key})
            raise StorageError(key, "delete", e) from e

    def exists(self, key: str) -> bool:
        try:
            self._client.stat_object(self._bucket_name, key)
            return True
        except S3Error as e:
            if e.code in _MISSING_CODES:
                return False
            logger.exception("MinIO stat failed", extra={"object_name": key})
            raise StorageError(key, "exists", e) from e
        except Exception as e:
            logger.exception("MinIO stat failed", extra={"object_name": key})
            raise StorageError(key, "exists", e) from e
