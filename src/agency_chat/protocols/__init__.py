"""Protocol definitions (extension points) for agency-chat."""

from .cache import ResponseCache
from .classifier import QueryClassifier
from .context import DomainDataProvider
from .provider import ChatProvider, ProviderStream
from .ratelimit import RateLimiter
from .storage import UsageStore
from .tokenizer import Tokenizer

__all__ = [
    "ChatProvider",
    "DomainDataProvider",
    "ProviderStream",
    "QueryClassifier",
    "RateLimiter",
    "ResponseCache",
    "Tokenizer",
    "UsageStore",
]
