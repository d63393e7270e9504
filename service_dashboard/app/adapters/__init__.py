"""
Adapters package for the dashboard data layer.

Contains the HTTP client wrapper for the business REST backend. The adapter
encapsulates base URL and bearer token handling, the request timeout, and
normalization of every failure into the shared ``ApiError`` hierarchy.

Retries are not done here: reads retry once in the query accessor and
mutations never retry.
"""

from .api_client import ApiClient, EntityApi, ProjectApi

__all__ = [
    "ApiClient",
    "EntityApi",
    "ProjectApi",
]
