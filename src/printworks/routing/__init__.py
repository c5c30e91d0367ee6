"""Model routing: choose backend, style adapter and prompt for a generation."""

from printworks.routing.catalog import (
    AdapterConfig,
    ModelJob,
    ModelSpec,
    PromptTemplates,
    StyleCatalog,
    StyleProfile,
    load_style_catalog,
)
from printworks.routing.router import (
    DEFAULT_JOB,
    TEXTURE_CRITICAL_STYLES,
    ModelRouter,
    SubjectSignals,
    default_router,
)

__all__ = [
    "AdapterConfig",
    "DEFAULT_JOB",
    "ModelJob",
    "ModelRouter",
    "ModelSpec",
    "PromptTemplates",
    "StyleCatalog",
    "StyleProfile",
    "SubjectSignals",
    "TEXTURE_CRITICAL_STYLES",
    "default_router",
    "load_style_catalog",
]
