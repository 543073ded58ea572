"""Pydantic models used by the storage router."""

from typing import Optional

from pydantic import BaseModel, Field


class UploadParamsResponse(BaseModel):
    """Signed direct upload; submit `key` in garmentKeys once the upload is done."""

    upload_url: str = Field(..., serialization_alias="uploadUrl")
    download_url: str = Field(..., serialization_alias="downloadUrl")
    key: str
    token: Optional[str] = None
