"""
Infrastructure layer - external service integrations.

- storage: Object storage backends (R2 bindings, S3-compatible APIs)

These wrappers implement the core's ObjectStore protocol.
"""
