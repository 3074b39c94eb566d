"""
Integration endpoint collaborator: feed upload and job status.
"""

from feedrelay.integration.client import HttpIntegrationClient
from feedrelay.integration.types import IntegrationClient, ServerOptions

__all__ = [
    "HttpIntegrationClient",
    "IntegrationClient",
    "ServerOptions",
]
