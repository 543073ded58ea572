"""Try-on submission endpoints."""
