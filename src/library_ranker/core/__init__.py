"""Core configuration and errors for Library Ranker."""

from library_ranker.core.config import (
    GLOBAL_SCOPE,
    MEDIA_TYPES,
    MediaType,
    RankerConfig,
    RatingConfig,
    SelectionConfig,
    SystemDefaults,
    load_config,
    validate_category,
    validate_rating,
)
from library_ranker.core.errors import (
    ConfigurationError,
    InvalidArgumentError,
    NotFoundError,
    RankerError,
    StoreFailureError,
    SystemNotInitializedError,
)

__all__ = [
    "GLOBAL_SCOPE",
    "MEDIA_TYPES",
    "MediaType",
    "RankerConfig",
    "RatingConfig",
    "SelectionConfig",
    "SystemDefaults",
    "load_config",
    "validate_category",
    "validate_rating",
    "ConfigurationError",
    "InvalidArgumentError",
    "NotFoundError",
    "RankerError",
    "StoreFailureError",
    "SystemNotInitializedError",
]
