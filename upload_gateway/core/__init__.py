"""
Core business logic for the upload gateway.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
or any infrastructure concerns. Storage backends are reached through the
ObjectStore protocol and injected by the caller.
"""
