"""Abstract interface for object storage operations."""

from abc import ABC, abstractmethod
from datetime import timedelta


class ObjectStore(ABC):
    """
    Abstract base class for bucket-style storage backends.

    Clients upload and download audio through presigned URLs; the server
    never proxies the bytes of an upload.
    """

    @abstractmethod
    def ensure_bucket(self) -> None:
        """Creates the bucket if it is absent. Idempotent."""

    @abstractmethod
    def presign_upload(self, key: str, ttl: timedelta) -> str:
        """
        Returns a URL granting a single PUT of ``key`` until ``ttl`` elapses.

        Raises:
            StorageError: If the URL cannot be generated.
        """

    @abstractmethod
    def presign_download(self, key: str, ttl: timedelta) -> str:
        """
        Returns a URL granting GET of ``key`` until ``ttl`` elapses.

        Raises:
            StorageError: If the URL cannot be generated.
        """

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> None:
        """
        Stores ``data`` under ``key``.

        Raises:
            StorageError: If the upload fails.
        """

    @abstractmethod
    def get(self, key: str) -> bytes:
        """
        Returns the bytes stored under ``key``.

        Raises:
            StorageError: If the object is missing or the download fails.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Removes ``key``. Removing a missing key is not an error.

        Raises:
            StorageError: If the store is unavailable.
        """

    @abstractmethod
    def exists(self, key: str) -> bool:
        """
        Returns True if ``key`` is stored.

        Raises:
            StorageError: If the store is unavailable.
        """
