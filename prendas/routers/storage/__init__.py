"""Direct-upload endpoints for garment images."""
