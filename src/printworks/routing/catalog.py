"""Pydantic models and loader for the static style catalog.

The catalog is a single JSON document with three tables:

- ``models``: generation backends the router can pick
- ``adapters``: style adapters that can be blended onto an adapter-capable model
- ``styles``: per-style routing profile and prompt templates

It is validated once at startup and never mutated afterwards, so one
:class:`StyleCatalog` instance is shared by reference across concurrent
callers.  Any problem with the document (missing file, bad JSON, a job that
names an unknown model or adapter) is a :class:`ConfigurationError`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from printworks.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ModelJob(BaseModel):
    """Which backend to run a generation on, and with which adapter.

    Attributes:
        model: Model name, a key of the catalog's ``models`` table
        use_adapter: Whether a style adapter is blended onto the model
        adapter_key: Key of the catalog's ``adapters`` table when ``use_adapter``
    """

    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Model name from the catalog (e.g. 'sdxl').")
    use_adapter: bool = Field(default=False)
    adapter_key: str | None = Field(default=None)

    @model_validator(mode="after")
    def _adapter_key_required(self) -> "ModelJob":
        if self.use_adapter and not self.adapter_key:
            raise ValueError(f"Job for '{self.model}' uses an adapter but names none")
        return self


class AdapterConfig(BaseModel):
    """A style adapter overlay.

    Attributes:
        source_ref: Where the adapter weights live
        blend_scale: Strength the adapter is applied with (0-2)
        trigger_token: Token the adapter was trained to respond to
    """

    model_config = ConfigDict(frozen=True)

    source_ref: str
    blend_scale: float = Field(..., ge=0.0, le=2.0)
    trigger_token: str


class ModelSpec(BaseModel):
    """Backend metadata handed to the generation client."""

    model_config = ConfigDict(frozen=True)

    version: str
    params: dict[str, Any] = Field(default_factory=dict)
    supports_adapter: bool = False
    cost_tier: str = "standard"


class PromptTemplates(BaseModel):
    """Prompt templates with ``{subject}``, ``{setting}`` and ``{trigger}`` tokens."""

    model_config = ConfigDict(frozen=True)

    with_adapter: str
    without_adapter: str


class StyleProfile(BaseModel):
    """Routing profile for one art style.

    Attributes:
        primary: Preferred job for ordinary subjects
        fallbacks: Jobs to use, in order, when there is no primary
        override_branch: Job for complex subjects (many people or close-ups)
        override_threshold: Subject count at which the override applies
        prompt_templates: Templates used by ``ModelRouter.prompt_for``
    """

    model_config = ConfigDict(frozen=True)

    primary: ModelJob | None = None
    fallbacks: tuple[ModelJob, ...] = ()
    override_branch: ModelJob | None = None
    override_threshold: int = Field(default=3, ge=1)
    prompt_templates: PromptTemplates | None = None

    def jobs(self) -> list[ModelJob]:
        """Every job this profile can return."""
        jobs = [job for job in (self.primary, self.override_branch) if job is not None]
        return jobs + list(self.fallbacks)


class StyleCatalog(BaseModel):
    """The validated, read-only style catalog."""

    model_config = ConfigDict(frozen=True)

    models: Mapping[str, ModelSpec]
    adapters: Mapping[str, AdapterConfig] = Field(default_factory=dict)
    styles: Mapping[str, StyleProfile]

    @field_validator("styles", mode="before")
    @classmethod
    def _lowercase_style_keys(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {str(key).lower(): profile for key, profile in value.items()}
        return value

    @field_validator("models", "adapters", "styles", mode="after")
    @classmethod
    def _freeze(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @model_validator(mode="after")
    def _references_resolve(self) -> "StyleCatalog":
        for style, profile in self.styles.items():
            for job in profile.jobs():
                if job.model not in self.models:
                    raise ValueError(f"Style '{style}' routes to unknown model '{job.model}'")
                if job.use_adapter:
                    if job.adapter_key not in self.adapters:
                        raise ValueError(
                            f"Style '{style}' uses unknown adapter '{job.adapter_key}'"
                        )
                    if not self.models[job.model].supports_adapter:
                        raise ValueError(
                            f"Style '{style}' puts an adapter on '{job.model}', which does not support one"
                        )
        return self


def load_style_catalog(path: Path | str | None = None) -> StyleCatalog:
    """Load and validate a style catalog.

    Args:
        path: JSON file to load.  ``None`` loads the catalog shipped with
            the package.

    Returns:
        The validated catalog

    Raises:
        ConfigurationError: If the file cannot be read or fails validation
    """
    try:
        if path is None:
            source = "packaged styles.json"
            raw = resources.files("printworks").joinpath("data/styles.json").read_text(encoding="utf-8")
        else:
            source = str(path)
            raw = Path(path).read_text(encoding="utf-8")
        catalog = StyleCatalog.model_validate(json.loads(raw))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError(f"Could not load style catalog from {source}: {e}") from e

    logger.info(
        f"Loaded style catalog from {source}: {len(catalog.styles)} styles, "
        f"{len(catalog.adapters)} adapters, {len(catalog.models)} models"
    )
    return catalog
