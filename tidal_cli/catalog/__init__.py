from .client import ApiClient, TidalSession, get_current_user, open_session
from .retry import with_empty_retry, with_retry

__all__ = [
    "ApiClient",
    "TidalSession",
    "get_current_user",
    "open_session",
    "with_empty_retry",
    "with_retry",
]
