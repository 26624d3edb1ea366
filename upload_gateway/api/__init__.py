"""
HTTP layer - FastAPI routes and dependencies.

Routes parse requests and translate core errors into HTTP statuses;
all bucket and upload decisions live in core.uploads.
"""
