"""Configuration schemas and loading for Library Ranker."""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Literal, get_args

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from library_ranker.core.errors import ConfigurationError, InvalidArgumentError

MediaType = Literal["movie", "tv", "anime", "music"]
MEDIA_TYPES: tuple[str, ...] = get_args(MediaType)

DATABASE_URL_ENV = "LIBRARY_RANKER_DATABASE_URL"
GLOBAL_SCOPE = "global"


def validate_category(category: str | None) -> str | None:
    """Check a category filter against the known media types.

    Args:
        category: Media type tag, or None for no filter.

    Returns:
        The category unchanged.

    Raises:
        InvalidArgumentError: If the category is not a known media type.
    """
    if category is None or category in MEDIA_TYPES:
        return category
    raise InvalidArgumentError(
        "category",
        f"Expected one of {', '.join(MEDIA_TYPES)}; got '{category}'.",
    )


def validate_rating(value: float, field: str = "rating") -> float:
    """Reject ratings that cannot be represented (NaN or infinite)."""
    if not math.isfinite(value):
        raise InvalidArgumentError(field, "Ratings must be finite numbers.")
    return value


class RatingConfig(BaseModel):
    """Rating update parameters.

    Attributes:
        initial_rating: Rating assigned to new items.
        initial_rating_deviation: Rating deviation (RD) assigned to new items.
        base_k_factor: Learning rate before experience tiers are applied.
        k_adjustment_strength: How strongly the pre-match rating gap dampens
            expected wins and amplifies upsets.
        rd_shrink_matches: Match count at which RD has halved.
    """

    initial_rating: float = 1500.0
    initial_rating_deviation: float = Field(default=350.0, gt=0)
    base_k_factor: float = Field(default=15.0, gt=0)
    k_adjustment_strength: float = Field(default=7.5, ge=0)
    rd_shrink_matches: float = Field(default=50.0, gt=0)

    @property
    def initial_volatility(self) -> float:
        """Volatility derived from the initial RD."""
        return self.initial_rating_deviation / 400


class SelectionConfig(BaseModel):
    """Pair selection parameters.

    Attributes:
        history_size: Number of recent comparisons kept to avoid repeats.
        recent_first_window: Records inspected to avoid reusing the same lead item.
        first_pool_size: Upper bound on the first-slot pool.
        first_pick_top: The first item is drawn uniformly from this many leaders.
        partner_scan: Partners inspected for an unseen pairing.
        jitter: Half-width of the multiplicative random jitter on priorities.
        exploration_horizon: Match count after which exploration need bottoms out.
        exploration_share: Weight of exploration need in the priority score.
        uncertainty_share: Weight of RD in the priority score.
        rating_share: Weight of rating magnitude in the priority score.
    """

    history_size: int = Field(default=20, ge=1)
    recent_first_window: int = Field(default=5, ge=0)
    first_pool_size: int = Field(default=15, ge=1)
    first_pick_top: int = Field(default=5, ge=1)
    partner_scan: int = Field(default=10, ge=1)
    jitter: float = Field(default=0.1, ge=0, lt=1)
    exploration_horizon: int = Field(default=30, ge=1)
    exploration_share: float = Field(default=0.5, ge=0)
    uncertainty_share: float = Field(default=0.3, ge=0)
    rating_share: float = Field(default=0.2, ge=0)

    @model_validator(mode="after")
    def validate_shares(self) -> SelectionConfig:
        total = self.exploration_share + self.uncertainty_share + self.rating_share
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            msg = f"Priority weights must sum to 1.0 (got {total:.3f})"
            raise ValueError(msg)
        return self


class SystemDefaults(BaseModel):
    """Defaults written into a newly created system state."""

    exploration_weight: float = Field(default=1.414, ge=0)
    provisional_threshold: int = Field(default=15, ge=1)
    decay_rate: float = Field(default=0.015, ge=0)
    tau: float = Field(default=0.5, gt=0)


class RankerConfig(BaseModel):
    """Complete Library Ranker configuration."""

    database_url: str = "duckdb:///library_ranker.duckdb"
    seed: int | None = None
    shared_state: bool = False  # One system state for all users instead of one per user
    default_user: str = "local"
    rating: RatingConfig = Field(default_factory=RatingConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    system: SystemDefaults = Field(default_factory=SystemDefaults)

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or "://" not in v:
            msg = "database_url must be a SQLAlchemy URL such as 'duckdb:///ranker.duckdb'"
            raise ValueError(msg)
        return v

    def resolve_database_url(self) -> str:
        """Get the database URL, preferring the environment override."""
        return os.environ.get(DATABASE_URL_ENV) or self.database_url


def load_config(path: str | Path | None = None) -> RankerConfig:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to a YAML configuration file. None returns the defaults.

    Returns:
        Validated RankerConfig instance.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigurationError: If the file is not a YAML mapping.
        pydantic.ValidationError: If the config is invalid.
    """
    if path is None:
        return RankerConfig()

    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    try:
        with config_path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Could not parse {config_path}", "Check the file is valid YAML."
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{config_path} must contain a mapping of settings",
            "Use keys such as database_url, seed, rating, selection and system.",
        )

    return RankerConfig.model_validate(data)
