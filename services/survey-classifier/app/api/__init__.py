"""
Classification API Module for Survey Classifier

Endpoints:
- /classify-row: Classify one survey row
- /classify: Classify an uploaded CSV, streamed as NDJSON progress events
"""

from .routes import router

__all__ = ["router"]
