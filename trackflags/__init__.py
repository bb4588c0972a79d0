"""
trackflags - feature flag evaluation for analytics clients.

Usage:
    from trackflags import FlagsClient

    client = FlagsClient("your-project-token", tracker_callback=tracker.track)
    await client.local_flags.start_polling_for_definitions()

    if client.local_flags.is_enabled("my-feature", {"distinct_id": "user-1"}):
        # Feature is enabled
        pass

    await client.close()
"""

from trackflags.client import FlagsClient
from trackflags.config import FlagsConfig, LocalFlagsConfig, RemoteFlagsConfig
from trackflags.provider import FlagsProvider, TrackerCallback
from trackflags.local_provider import LocalFlagsProvider
from trackflags.remote_provider import RemoteFlagsProvider
from trackflags.cache import CacheStats, DefinitionSnapshot, FlagDefinitionCache
from trackflags.errors import (
    TrackflagsError,
    NetworkError,
    ServerError,
    RuleEvaluationError,
    TrackingError,
    ErrorCategory,
    ErrorHandler,
    LoggingErrorHandler,
    classify_error,
)
from trackflags.types import (
    FlagDefinition,
    RuleSet,
    Rollout,
    Variant,
    VariantOverride,
    SelectedVariant,
    VariantValue,
)
from trackflags.evaluate import evaluate_flag
from trackflags.tracing import TraceContext, RequestTrace, generate_traceparent
from trackflags.utils import EXPOSURE_EVENT, normalized_hash
from trackflags.version import __version__

__all__ = [
    # Client
    "FlagsClient",
    # Config
    "FlagsConfig",
    "LocalFlagsConfig",
    "RemoteFlagsConfig",
    # Providers
    "FlagsProvider",
    "TrackerCallback",
    "LocalFlagsProvider",
    "RemoteFlagsProvider",
    # Cache
    "CacheStats",
    "DefinitionSnapshot",
    "FlagDefinitionCache",
    # Errors
    "TrackflagsError",
    "NetworkError",
    "ServerError",
    "RuleEvaluationError",
    "TrackingError",
    "ErrorCategory",
    "ErrorHandler",
    "LoggingErrorHandler",
    "classify_error",
    # Types
    "FlagDefinition",
    "RuleSet",
    "Rollout",
    "Variant",
    "VariantOverride",
    "SelectedVariant",
    "VariantValue",
    # Evaluation
    "evaluate_flag",
    # Tracing
    "TraceContext",
    "RequestTrace",
    "generate_traceparent",
    # Utils
    "EXPOSURE_EVENT",
    "normalized_hash",
    "__version__",
]
