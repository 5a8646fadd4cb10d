import logging
import os
from dataclasses import dataclass, field

from .forms import WILDCARD

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 128

MAX_DEPTH_ENV = "CLOSURESCOPE_MAX_DEPTH"


@dataclass(frozen=True)
class AnalysisConfig:
    # Walks that exhaust the interpreter stack first also raise TooDeepError
    max_depth: int = DEFAULT_MAX_DEPTH
    wildcard: str = WILDCARD
    # Identifiers starting with this prefix are never references. Attribute
    # reads parse to AttrRef, so this only matters for hand-built trees.
    attribute_sigil: str = "@"
    extra_special_forms: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        max_depth_str = os.getenv(MAX_DEPTH_ENV)
        if max_depth_str is None or max_depth_str.strip() == "":
            return cls()
        try:
            max_depth = int(max_depth_str)
            if max_depth <= 0:
                raise ValueError("max_depth must be positive")
        except ValueError:
            logger.warning(
                "Invalid %s=%r, using default %d", MAX_DEPTH_ENV, max_depth_str, DEFAULT_MAX_DEPTH
            )
            max_depth = DEFAULT_MAX_DEPTH
        return cls(max_depth=max_depth)


DEFAULT_CONFIG = AnalysisConfig()


def resolve_config(config: AnalysisConfig | None) -> AnalysisConfig:
    if config is None:
        return DEFAULT_CONFIG
    return config
