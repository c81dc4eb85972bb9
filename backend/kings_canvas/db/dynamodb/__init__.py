"""Shared DynamoDB utilities.

- boto3 resource configuration
- retry/backoff policy
- typed errors rendered as problem-details responses
- the single-table wrapper used by the repositories
"""
