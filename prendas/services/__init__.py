"""Use cases run by the API and the background workers."""
