"""
Upload Gateway - a multi-tenant file upload service for object storage.

This package contains the complete application:
- core: Framework-agnostic bucket policy and upload logic
- infrastructure: Object storage backends (R2 bindings, S3-compatible)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
