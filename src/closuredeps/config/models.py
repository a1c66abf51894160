"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, closuredeps.toml only contains
overrides. A typical project needs only ``[graph] lib``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from closuredeps.domain.declarations import DEFAULT_ROOT


class GraphConfig(BaseModel):
    """[graph] section."""

    model_config = {"frozen": True}

    lib: list[str] = Field(default_factory=list)
    main: list[str] = Field(default_factory=list)
    bundled: list[str] = Field(default_factory=list)
    namespace_root: str = DEFAULT_ROOT

    @field_validator("lib", "main", "bundled", mode="before")
    @classmethod
    def _single_pattern(cls, value: object) -> object:
        # ``lib = "src/**/*.js"`` is accepted as shorthand for a one-item list.
        if isinstance(value, str):
            return [value]
        return value


class WatchConfig(BaseModel):
    """[watch] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    coalesce_seconds: float = 0.05


class ResolveConfig(BaseModel):
    """[resolve] section."""

    model_config = {"frozen": True}

    cycles: Literal["error", "ignore"] = "error"
    reload_policy: Literal["fail_fast", "best_effort"] = "fail_fast"


class EventsConfig(BaseModel):
    """[events] section."""

    model_config = {"frozen": True}

    sync: bool = False


class DepsConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    graph: GraphConfig = Field(default_factory=GraphConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    resolve: ResolveConfig = Field(default_factory=ResolveConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
