"""MinIO service for snapshot preview storage.

Snapshot previews are small rendered images written once when a snapshot
is created and read back through presigned URLs by clients showing the
history list.
"""

import io
from datetime import timedelta
from typing import Optional

from minio import Minio
from minio.error import S3Error

from ..config import settings


class MinIOServiceError(Exception):
    """Custom exception for MinIO service errors."""

    pass


class MinIOService:
    """
    Service for interacting with MinIO object storage.

    The client is created lazily and the preview bucket is created on
    first upload.
    """

    DEFAULT_URL_EXPIRY = timedelta(hours=1)

    def __init__(self, bucket: Optional[str] = None):
        """Initialize the service; no connection is made until first use."""
        self.bucket = bucket or settings.preview_bucket
        self._client: Optional[Minio] = None
        self._initialized = False

    @property
    def client(self) -> Minio:
        """
        Get the MinIO client instance, creating it if necessary.

        Raises:
            MinIOServiceError: If client creation fails
        """
        if self._client is None:
            try:
                self._client = Minio(
                    endpoint=settings.minio_endpoint,
                    access_key=settings.minio_access_key,
                    secret_key=settings.minio_secret_key,
                    secure=settings.minio_secure,
                )
            except Exception as e:
                raise MinIOServiceError(f"Failed to create MinIO client: {str(e)}")
        return self._client

    def ensure_bucket_exists(self) -> None:
        """
        Ensure the preview bucket exists, creating it if necessary.

        Raises:
            MinIOServiceError: If bucket creation fails
        """
        if self._initialized:
            return

        try:
            if not self.client.bucket_exists(self.bucket):
                self.client.make_bucket(self.bucket)
        except S3Error as e:
            raise MinIOServiceError(
                f"Failed to create bucket '{self.bucket}': {str(e)}"
            )

        self._initialized = True

    def upload_bytes(
        self,
        object_name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload bytes to the preview bucket.

        Args:
            object_name: Object key (path) in the bucket
            data: Bytes to upload
            content_type: MIME type of the data

        Returns:
            The object name (key) of the uploaded object

        Raises:
            MinIOServiceError: If upload fails
        """
        self.ensure_bucket_exists()

        try:
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=object_name,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
            return object_name
        except S3Error as e:
            raise MinIOServiceError(f"Failed to upload object: {str(e)}")

    def get_presigned_download_url(
        self,
        object_name: str,
        expiry: Optional[timedelta] = None,
    ) -> str:
        """
        Generate a presigned URL for downloading an object.

        Args:
            object_name: Object key (path) in the bucket
            expiry: URL expiration time (default: 1 hour)

        Returns:
            Presigned URL string

        Raises:
            MinIOServiceError: If URL generation fails
        """
        if expiry is None:
            expiry = self.DEFAULT_URL_EXPIRY

        try:
            return self.client.presigned_get_object(
                bucket_name=self.bucket,
                object_name=object_name,
                expires=expiry,
            )
        except S3Error as e:
            raise MinIOServiceError(f"Failed to generate download URL: {str(e)}")


# Global service instance
minio_service = MinIOService()


def get_minio_service() -> MinIOService:
    """
    FastAPI dependency for getting the MinIO service instance.

    Returns:
        MinIO service instance
    """
    return minio_service
