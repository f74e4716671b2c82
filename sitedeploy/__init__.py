"""
Static site deployer - publish a build directory to a website bucket.

This package contains:
- core: Bucket reconciliation, upload pipeline and orchestration
- infrastructure: Object store clients (S3 and in-memory)
- config: Settings loaded from the environment
"""

__version__ = "0.1.0"
