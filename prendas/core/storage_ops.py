"""
Storage operations module for Supabase Storage.
Handles signed client uploads, uploads of try-on results and downloads of garment and result images.
"""

import re
import time
from pathlib import PurePosixPath
from typing import Optional

from supabase import Client

from prendas.config import STORAGE_BUCKET, logger
from prendas.core.errors import UpstreamServiceError
from prendas.core.ports import ObjectStorage, UploadTarget
from prendas.db import get_supabase_client


class SupabaseStorage(ObjectStorage):
    """Object storage backed by a public Supabase Storage bucket."""

    def __init__(self, client: Optional[Client] = None, bucket: str = STORAGE_BUCKET):
        self._client = client
        self.bucket = bucket

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def public_url(self, key: str) -> str:
        """
        Generate a public URL for a file in Supabase Storage.

        Args:
            key: Path to the file in storage (e.g., 'uploads/filename.jpg')

        Returns:
            str: Public URL to access the file
        """
        public_url = self.client.storage.from_(self.bucket).get_public_url(key)
        logger.debug(f"Generated public URL for path: {key}")
        return public_url.rstrip("?")

    def url_to_key(self, url: str) -> str:
        """Return the storage path of a public URL of this bucket."""
        marker = f"/{self.bucket}/"
        if marker in url:
            return url.split(marker, 1)[-1].split("?", 1)[0]
        # Already a key
        return url.lstrip("/")

    async def put(self, key: str, data: bytes, mime_type: str) -> str:
        """
        Upload bytes under key and return the public URL.

        Raises:
            UpstreamServiceError: If upload fails
        """
        try:
            logger.info(f"Uploading {len(data)} bytes to storage: {key}")

            self.client.storage.from_(self.bucket).upload(
                path=key,
                file=data,
                file_options={"content-type": mime_type},
            )

            public_url = self.public_url(key)
            logger.info(f"Successfully uploaded file to: {public_url}")
            return public_url

        except Exception as e:
            logger.error(f"Error uploading file {key}: {e}")
            raise UpstreamServiceError("storage", f"Upload of {key} failed: {e}") from e

    async def get(self, key: str) -> bytes:
        """
        Download a file from storage.

        Raises:
            UpstreamServiceError: If download fails
        """
        try:
            logger.debug(f"Downloading file from storage: {key}")
            return self.client.storage.from_(self.bucket).download(key)
        except Exception as e:
            logger.error(f"Error downloading file {key}: {e}")
            raise UpstreamServiceError("storage", f"Download of {key} failed: {e}") from e

    async def create_upload_target(self, filename: str, mime_type: str) -> UploadTarget:
        """
        Reserve a fresh key under uploads/ and sign a direct upload to it.

        Args:
            filename: Client file name, only its base name is kept
            mime_type: Content type the client will upload with

        Returns:
            UploadTarget with the signed upload URL, public URL and key

        Raises:
            UpstreamServiceError: If the signed URL cannot be created
        """
        safe_name = re.sub(r"[^A-Za-z0-9._-]+", "-", PurePosixPath(filename).name).strip("-")
        key = f"uploads/{int(time.time() * 1000)}-{safe_name or 'garment'}"

        try:
            signed = self.client.storage.from_(self.bucket).create_signed_upload_url(key)
        except Exception as e:
            logger.error(f"Error creating signed upload URL for {key}: {e}")
            raise UpstreamServiceError("storage", f"Signing upload of {key} failed: {e}") from e

        upload_url = signed.get("signed_url") or signed.get("signedUrl")
        if not upload_url:
            raise UpstreamServiceError("storage", f"Signing upload of {key} returned no URL")

        logger.info(f"Created signed upload URL for {key} ({mime_type})")
        return UploadTarget(
            key=key,
            upload_url=upload_url,
            download_url=self.public_url(key),
            token=signed.get("token"),
        )
