"""Prompt templates for the Gemini try-on and metadata flows."""

from __future__ import annotations


# --- GENERATION PROMPT ---

TRYON_PROMPT_TEMPLATE = """STRICT ADHERENCE TO ANCHOR IMAGE (Image 1):
The gray mannequin in Image 1 is your ABSOLUTE ANCHOR.
Do NOT change its pose, face (no face), skin color (gray), body shape, underwear or background.

TRANSFER TASK:
Analyze the clothing items in the additional images (Images 2 to {LAST_IMAGE_INDEX}).
Fit ALL {GARMENT_COUNT} item(s) onto the mannequin from Image 1 simultaneously.
- Tops/Shirts go to the torso.
- Bottoms/Pants go to the legs.
- Footwear goes to the feet.
- Accessories go to their respective natural positions.

REALISM & CONSISTENCY:
- Maintain the original lighting and neutral background.
- Ensure fabric draping, shadows, and scale are realistic for the mannequin's pose.
- The output MUST look like the original mannequin wearing the new clothes.
- Maintain the EXACT resolution and aspect ratio of Image 1 in the output.
- NO hallucinations, NO added people, NO changed environment.

Return only the final image."""


def build_tryon_prompt(garment_count: int) -> str:
    """Render the compositing instruction for the given number of garment images."""
    if garment_count < 1:
        raise ValueError("Try-on prompt needs at least one garment image.")

    return TRYON_PROMPT_TEMPLATE.format(
        GARMENT_COUNT=garment_count,
        LAST_IMAGE_INDEX=garment_count + 1,
    )


# --- METADATA PROMPT ---

METADATA_PROMPT_TEMPLATE = """Analyze the attached image of a garment or outfit and extract its metadata in the following JSON format.
Keys must be exactly as specified in English.
Values for descriptive fields must be an object with 'es' and 'en' keys for Spanish and English translations.

JSON Structure:
{
  "physical": {
    "category": { "es": "...", "en": "..." },
    "subcategory": { "es": "...", "en": "..." },
    "dominant_color": {
      "name": { "es": "...", "en": "..." },
      "hex": "#..."
    },
    "color_palette": ["#...", "#..."],
    "material": { "es": "...", "en": "..." },
    "texture_pattern": { "es": "...", "en": "..." }
  },
  "design": {
    "neckline": { "es": "...", "en": "..." },
    "sleeve_length": { "es": "...", "en": "..." },
    "fit": { "es": "...", "en": "..." },
    "closure_type": { "es": "...", "en": "..." },
    "details": [
      { "es": "...", "en": "..." }
    ]
  },
  "context": {
    "occasion": [
      { "es": "...", "en": "..." }
    ],
    "season": { "es": "...", "en": "..." },
    "gender": { "es": "...", "en": "..." },
    "visual_style": { "es": "...", "en": "..." }
  },
  "ai_description": {
    "es": "...",
    "en": "..."
  }
}

Be specific and professional. For colors, use standard CSS hex codes.
Respond with raw JSON only (no markdown, comments, or text outside the object).
"""


def build_metadata_prompt() -> str:
    """Return the fixed metadata extraction prompt."""
    return METADATA_PROMPT_TEMPLATE


__all__ = [
    "TRYON_PROMPT_TEMPLATE",
    "METADATA_PROMPT_TEMPLATE",
    "build_tryon_prompt",
    "build_metadata_prompt",
]
