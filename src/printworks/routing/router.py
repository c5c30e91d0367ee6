"""Style-aware choice of generation backend, adapter and prompt.

Decision Policy
---------------
:meth:`ModelRouter.select_job` applies these rules in order:

1. Texture-critical styles (impressionist, oil painting) always get their
   primary job.  Subject signals are ignored: brushwork fidelity matters more
   than face handling for these styles.
2. Complex subjects (``subject_count >= override_threshold`` or a close-up)
   take the style's override branch, when it has one.
3. Otherwise the style's primary job.
4. Otherwise the style's first fallback.
5. Otherwise the base model without an adapter.

Unknown styles go straight to rule 5.  The router is a pure function of its
catalog and arguments: no I/O, and it never raises, so callers can route
before they have validated anything else about a request.

Usage
-----
::

    from printworks.routing import SubjectSignals, default_router

    router = default_router()
    job = router.select_job("watercolour", SubjectSignals(subject_count=4))
    prompt = router.prompt_for("watercolour", "two sisters", "a garden", job.use_adapter)
    logger.info(router.routing_reason("watercolour", SubjectSignals(4), job))
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from printworks.core.config import config
from printworks.routing.catalog import (
    AdapterConfig,
    ModelJob,
    ModelSpec,
    StyleCatalog,
    StyleProfile,
    load_style_catalog,
)

logger = logging.getLogger(__name__)

TEXTURE_CRITICAL_STYLES = frozenset({"impressionist", "oil_painting"})

DEFAULT_JOB = ModelJob(model="sdxl", use_adapter=False)

_TOKEN_PATTERN = re.compile(r"\{(subject|setting|trigger)\}")


@dataclass(frozen=True)
class SubjectSignals:
    """What the story analysis found about the people in a scene.

    Attributes:
        subject_count: Number of people in the scene
        close_up: Whether faces are framed close up
    """

    subject_count: int = 0
    close_up: bool = False

    @classmethod
    def from_has_people(cls, has_people: bool) -> "SubjectSignals":
        """Build signals from the older yes/no "has people" flag."""
        return cls(subject_count=1 if has_people else 0, close_up=False)


def _style_key(style: Any) -> str | None:
    if not isinstance(style, str) or not style.strip():
        return None
    return style.strip().lower()


def _subject_count(signals: Any) -> int:
    count = getattr(signals, "subject_count", 0)
    if isinstance(count, bool) or not isinstance(count, int):
        return 0
    return max(0, count)


def _is_close_up(signals: Any) -> bool:
    return getattr(signals, "close_up", False) is True


def _describe(job: ModelJob) -> str:
    if job.use_adapter:
        return f"{job.model.upper()}+adapter({job.adapter_key})"
    return job.model.upper()


class ModelRouter:
    """Route (style, subject signals) to a :class:`ModelJob`.

    Args:
        catalog: Validated style catalog, shared read-only
    """

    def __init__(self, catalog: StyleCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> StyleCatalog:
        return self._catalog

    def _profile(self, style: Any) -> tuple[str | None, StyleProfile | None]:
        key = _style_key(style)
        if key is None:
            return None, None
        return key, self._catalog.styles.get(key)

    def _is_complex(self, profile: StyleProfile, signals: Any) -> bool:
        return _subject_count(signals) >= profile.override_threshold or _is_close_up(signals)

    def select_job(self, style: Any, signals: SubjectSignals | None = None) -> ModelJob:
        """Pick the generation job for a style and subject.

        Args:
            style: Style key (case-insensitive).  Anything unrecognised
                routes to the default job.
            signals: Subject signals; ``None`` means no people detected

        Returns:
            A catalog job, or :data:`DEFAULT_JOB`.  Never raises.
        """
        key, profile = self._profile(style)

        if profile is None:
            logger.debug(f"No profile for style {style!r}; using default job")
            return DEFAULT_JOB

        if key in TEXTURE_CRITICAL_STYLES and profile.primary is not None:
            return profile.primary

        if profile.override_branch is not None and self._is_complex(profile, signals):
            return profile.override_branch

        if profile.primary is not None:
            return profile.primary

        if profile.fallbacks:
            return profile.fallbacks[0]

        return DEFAULT_JOB

    def adapter_for(self, key: Any) -> AdapterConfig | None:
        """Return the adapter registered under ``key``, or ``None``."""
        if not isinstance(key, str):
            return None
        return self._catalog.adapters.get(key)

    def model_spec(self, model: Any) -> ModelSpec | None:
        """Return backend metadata for ``model``, or ``None``."""
        if not isinstance(model, str):
            return None
        return self._catalog.models.get(model)

    def prompt_for(self, style: Any, subject: str, setting: str, using_adapter: bool) -> str:
        """Fill the style's prompt template for a subject and setting.

        The adapter template gets the trigger token of the style's primary
        adapter.  Styles without templates get a generic sentence.
        """
        key, profile = self._profile(style)

        if profile is None or profile.prompt_templates is None:
            label = style if isinstance(style, str) and style.strip() else "art"
            return f"A beautiful {label} artwork of {subject} in {setting}"

        templates = profile.prompt_templates
        template = templates.with_adapter if using_adapter else templates.without_adapter

        trigger = ""
        if using_adapter and profile.primary is not None and profile.primary.adapter_key:
            adapter = self.adapter_for(profile.primary.adapter_key)
            if adapter is not None:
                trigger = adapter.trigger_token

        values = {"subject": subject, "setting": setting, "trigger": trigger}
        # Single pass so token-like text inside subject/setting is left alone.
        prompt = _TOKEN_PATTERN.sub(lambda match: values[match.group(1)], template)
        return " ".join(prompt.split())

    def routing_reason(self, style: Any, signals: SubjectSignals | None, job: ModelJob) -> str:
        """Explain, for logs and admin views, why ``job`` fits this request."""
        key, profile = self._profile(style)
        label = key or "unknown"

        if profile is None:
            return f"unknown style '{label}' → default {_describe(job)}"

        if key in TEXTURE_CRITICAL_STYLES and job == profile.primary:
            return f"{label} always uses {_describe(job)} for texture fidelity"

        if job == profile.override_branch and self._is_complex(profile, signals):
            count = _subject_count(signals)
            if count >= profile.override_threshold:
                return f"{count} subjects (threshold {profile.override_threshold}) → {_describe(job)} for multiple faces"
            return f"close-up faces → {_describe(job)} for detail"

        if job.use_adapter:
            return f"{_describe(job)} for superior {label} texture"

        if profile.primary is None and profile.fallbacks and job == profile.fallbacks[0]:
            return f"{label} has no primary job → fallback {_describe(job)}"

        return f"{label} optimization → {_describe(job)}"


@lru_cache(maxsize=1)
def default_router() -> ModelRouter:
    """Router over the configured catalog, loaded on first use and then shared.

    Raises:
        ConfigurationError: If the catalog cannot be loaded
    """
    return ModelRouter(load_style_catalog(config.styles_path))
