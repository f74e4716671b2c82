"""
Infrastructure layer - external service integrations.

- storage: Object store clients (S3 via boto3, plus an in-memory mock)

These wrappers translate provider calls and errors into the interface
and error types the deployment core expects.
"""
