"""Python client for the DevDocs API."""
from devdocs.client.results import (
    ApiCallFailed,
    ApiError,
    ApiResult,
    NoStructuredError,
    Success,
    unwrap,
)
from devdocs.client.session import RefreshFailed, SessionAgent
from devdocs.client.snippets import SnippetsAPI
from devdocs.client.storage import FileTokenStore, MemoryTokenStore, SessionState, TokenStore

__all__ = [
    "ApiCallFailed",
    "ApiError",
    "ApiResult",
    "FileTokenStore",
    "MemoryTokenStore",
    "NoStructuredError",
    "RefreshFailed",
    "SessionAgent",
    "SessionState",
    "SnippetsAPI",
    "Success",
    "TokenStore",
    "unwrap",
]
