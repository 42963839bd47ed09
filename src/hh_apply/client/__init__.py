"""
hh-apply client: the browser-side half of the OAuth flow, client storage,
the server API client and the bulk auto-applicator.
"""

from .storage import ClientStorage, KeyringStorage, MemoryStorage
from .auth_flow import AuthFlowController, AuthorizeConfig, FlowState, generate_state, parse_callback
from .backend import BackendClient
from .auto_apply import AutoApplicator, BulkApplyReport

__all__ = [
    "ClientStorage", "KeyringStorage", "MemoryStorage",
    "AuthFlowController", "AuthorizeConfig", "FlowState", "generate_state", "parse_callback",
    "BackendClient",
    "AutoApplicator", "BulkApplyReport",
]
