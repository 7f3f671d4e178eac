"""FastAPI application for the emotion timeline dashboard feed.

This module provides a REST API with endpoints for:
- /health: Service health check
- /emotion-timeline/{device_id}/{date}: Normalized timeline for a day
- /emotion-timeline/normalize: Normalize a posted raw timeline

Example:
    To run the API server:
    
    $ uvicorn src.api.main:app --host 0.0.0.0 --port 8000
"""

from .main import app

__all__ = ["app"]
