"""FastAPI surface of the site analysis engine."""
