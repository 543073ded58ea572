from pydantic import BaseModel, Field
from typing import List


class LocalizedText(BaseModel):
    es: str
    en: str


class DominantColor(BaseModel):
    name: LocalizedText
    hex: str


class PhysicalAttributes(BaseModel):
    category: LocalizedText
    subcategory: LocalizedText
    dominant_color: DominantColor
    color_palette: List[str] = Field(default_factory=list)
    material: LocalizedText
    texture_pattern: LocalizedText


class DesignAttributes(BaseModel):
    neckline: LocalizedText
    sleeve_length: LocalizedText
    fit: LocalizedText
    closure_type: LocalizedText
    details: List[LocalizedText] = Field(default_factory=list)


class ContextAttributes(BaseModel):
    occasion: List[LocalizedText] = Field(default_factory=list)
    season: LocalizedText
    gender: LocalizedText
    visual_style: LocalizedText


class GarmentMetadata(BaseModel):
    """Multilingual taxonomy extracted from a garment or try-on result image."""

    physical: PhysicalAttributes
    design: DesignAttributes
    context: ContextAttributes
    ai_description: LocalizedText
