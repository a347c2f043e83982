"""
HTTP collaborator for the Senado Federal and Camara dos Deputados APIs.

Modules:
    api_client: LegislativeApiClient (httpx) with error mapping, retry and pagination
    endpoints: Endpoint catalog used by the processors
"""

__all__ = [
    "Endpoint",
    "FetchOutcome",
    "LegislativeApiClient",
]
