"""
Core deployment logic.

This module is framework-agnostic - it doesn't import boto3 or read
settings. The object store it talks to is passed in, so the whole
deployment flow can be tested against the in-memory store.
"""
