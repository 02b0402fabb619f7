"""
Client infrastructure shared by the AWS adapters.
"""

from .base import AWSClient, ClientMetrics, create_boto3_client

__all__ = [
    "AWSClient",
    "ClientMetrics",
    "create_boto3_client",
]
