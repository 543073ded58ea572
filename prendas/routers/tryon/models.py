"""Pydantic models used by the try-on router."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TryOnRequest(BaseModel):
    """Try-on submission: uploaded storage keys and/or existing garment ids."""

    model_config = ConfigDict(populate_by_name=True)

    category: str = "clothing"
    garment_keys: List[str] = Field(default_factory=list, alias="garmentKeys")
    garment_ids: List[str] = Field(default_factory=list, alias="garmentIds")
    person_type: Optional[str] = Field(None, alias="personType")
    hashes: List[Optional[str]] = Field(
        default_factory=list, description="Content hashes aligned with garmentKeys"
    )


class GarmentResponse(BaseModel):
    id: str
    original_url: str = Field(..., serialization_alias="originalUrl")
    category: str


class TryOnResponse(BaseModel):
    """Response model for try-on job submission."""

    success: bool
    id: str
    session_id: str = Field(..., serialization_alias="sessionId")
    status: str = Field(..., description="Current processing status for the try-on job")
    uploaded_garments: List[GarmentResponse] = Field(
        default_factory=list, serialization_alias="uploadedGarments"
    )


class SessionStatusResponse(BaseModel):
    success: bool
    session_id: str = Field(..., serialization_alias="sessionId")
    status: str
    stance: str
    result_url: Optional[str] = Field(None, serialization_alias="resultUrl")
    garment_ids: List[str] = Field(default_factory=list, serialization_alias="garmentIds")
