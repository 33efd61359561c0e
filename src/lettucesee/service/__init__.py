"""FastAPI detection service for the lettuce detector."""
