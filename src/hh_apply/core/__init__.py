"""
Core hh.ru integration: the provider HTTP client, the authenticated API proxy
and the application service built on top of them.
"""

from .provider_client import ProviderClient, parse_provider_error, raise_for_provider
from .hh_proxy import HHApiProxy, NOT_JOB_SEEKER_MESSAGE

__all__ = [
    "ProviderClient", "parse_provider_error", "raise_for_provider",
    "HHApiProxy", "NOT_JOB_SEEKER_MESSAGE",
]
