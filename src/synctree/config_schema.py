"""Unified configuration schema for synctree.

Defines Pydantic models for the YAML config structure with dedicated
sections for the repository, the compare editor, named sync profiles
and logging.

Usage:
    from synctree.config_loader import load_hierarchical_config
    from synctree.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    profile = unified.sync["upstream"]
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


def _strip_paths(values: list[str]) -> list[str]:
    return [v.strip().strip("/") for v in values if v.strip().strip("/")]


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RepositoryConfig(BaseModel):
    """Repository location and history settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    path: str | None = Field(
        default=None, description="Root of the git working tree"
    )
    base: str = Field(
        default="HEAD", description="Default base revision"
    )
    first_parent: bool = Field(
        default=False,
        description="Follow only first parents when collecting ancestry",
    )

    model_config = {"frozen": True}


class CompareConfig(BaseModel):
    """Two-way and conflict-aware diff settings.

    Attributes:
        containers: Top-level folders tagged as containers in diff trees.
        collapse: Merge single-child folder chains after building.
        ignore: Extra glob patterns excluded from comparisons.
    """

    containers: list[str] = Field(default_factory=list)
    collapse: bool = True
    ignore: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("containers")
    @classmethod
    def _normalize_containers(cls, v: list[str]) -> list[str]:
        return _strip_paths(v)


class SyncProfileConfig(BaseModel):
    """A named synchronize request.

    Attributes:
        roots: Scope roots (repository-relative); empty for everything.
        base: Base revision (the local checkpoint, usually HEAD).
        remote: Revision compared against (e.g. ``origin/main``).
        include_local: Classify uncommitted working-tree content; when
            false the base snapshot stands in for the local side.
        ignore: Glob patterns whose paths are always in sync.
    """

    roots: list[str] = Field(default_factory=list)
    base: str = "HEAD"
    remote: str
    include_local: bool = True
    ignore: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("roots")
    @classmethod
    def _normalize_roots(cls, v: list[str]) -> list[str]:
        return _strip_paths(v)

    @field_validator("remote", "base")
    @classmethod
    def _non_empty_ref(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("revision must not be empty")
        return v.strip()


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    compare: CompareConfig = Field(default_factory=CompareConfig)
    sync: dict[str, SyncProfileConfig] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
