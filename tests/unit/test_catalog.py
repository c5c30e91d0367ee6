"""Tests for printworks.routing.catalog — loading and validating the style catalog."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from printworks.core.exceptions import ConfigurationError
from printworks.routing import ModelJob, StyleCatalog, load_style_catalog

MODELS = {
    "sdxl": {"version": "v1", "supports_adapter": True},
    "flux-schnell": {"version": "v2", "supports_adapter": False},
}
ADAPTERS = {"ink": {"source_ref": "s3://a/ink", "blend_scale": 0.5, "trigger_token": "INK"}}


def _write(path: Path, document: dict) -> Path:
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestPackagedCatalog:
    def test_loads(self, catalog: StyleCatalog):
        """The packaged catalog should load with its known styles and models."""
        assert {"watercolour", "oil_painting", "impressionist"} <= set(catalog.styles)
        assert set(catalog.models) == {"sdxl", "flux-schnell"}

    def test_is_read_only(self, catalog: StyleCatalog):
        """The loaded catalog cannot be modified."""
        with pytest.raises(TypeError):
            catalog.styles["new"] = catalog.styles["watercolour"]  # type: ignore[index]
        with pytest.raises(ValidationError):
            catalog.styles["watercolour"].override_threshold = 1  # type: ignore[misc]


class TestValidation:
    def test_job_with_adapter_needs_key(self):
        """A job using an adapter must name one."""
        with pytest.raises(ValidationError):
            ModelJob(model="sdxl", use_adapter=True)

    def test_style_keys_lowercased(self):
        """Style names are normalised to lowercase."""
        catalog = StyleCatalog.model_validate({"models": MODELS, "styles": {"Pastel": {}}})
        assert "pastel" in catalog.styles

    def test_unknown_model_rejected(self):
        """Styles may only reference models in the catalog."""
        with pytest.raises(ValidationError, match="unknown model"):
            StyleCatalog.model_validate(
                {"models": MODELS, "styles": {"x": {"primary": {"model": "dalle"}}}}
            )

    def test_unknown_adapter_rejected(self):
        """Styles may only reference adapters in the catalog."""
        with pytest.raises(ValidationError, match="unknown adapter"):
            StyleCatalog.model_validate(
                {
                    "models": MODELS,
                    "adapters": ADAPTERS,
                    "styles": {"x": {"primary": {"model": "sdxl", "use_adapter": True, "adapter_key": "oil"}}},
                }
            )

    def test_adapter_on_incapable_model_rejected(self):
        """An adapter cannot be paired with a model that lacks adapter support."""
        with pytest.raises(ValidationError, match="does not support"):
            StyleCatalog.model_validate(
                {
                    "models": MODELS,
                    "adapters": ADAPTERS,
                    "styles": {
                        "x": {"primary": {"model": "flux-schnell", "use_adapter": True, "adapter_key": "ink"}}
                    },
                }
            )

    def test_blend_scale_bounds(self):
        """Adapter blend scales outside their range are rejected."""
        with pytest.raises(ValidationError):
            StyleCatalog.model_validate(
                {
                    "models": MODELS,
                    "adapters": {"ink": {"source_ref": "r", "blend_scale": 3.0, "trigger_token": "T"}},
                    "styles": {},
                }
            )


class TestLoadFromPath:
    def test_custom_catalog(self, tmp_path: Path):
        """A catalog can be loaded from a custom path."""
        path = _write(
            tmp_path / "styles.json",
            {
                "models": MODELS,
                "adapters": ADAPTERS,
                "styles": {"ink_wash": {"primary": {"model": "sdxl", "use_adapter": True, "adapter_key": "ink"}}},
            },
        )
        catalog = load_style_catalog(path)
        assert catalog.styles["ink_wash"].primary.adapter_key == "ink"

    def test_missing_file(self, tmp_path: Path):
        """A missing catalog file is a configuration error."""
        with pytest.raises(ConfigurationError, match="Could not load style catalog"):
            load_style_catalog(tmp_path / "absent.json")

    def test_bad_json(self, tmp_path: Path):
        """Malformed JSON is a configuration error chained to the parse error."""
        path = tmp_path / "styles.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            load_style_catalog(path)
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    def test_invalid_document(self, tmp_path: Path):
        """A document missing required sections is a configuration error."""
        path = _write(tmp_path / "styles.json", {"styles": {}})
        with pytest.raises(ConfigurationError):
            load_style_catalog(path)
