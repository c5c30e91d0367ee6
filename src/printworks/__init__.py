"""Printworks - fulfillment asset pipeline for personalised art prints."""

__version__ = "0.1.0"

from printworks.admission import AdmissionController, Identifier, create_admission_controller
from printworks.compositor import PrintCompositor, composite, get_print_spec
from printworks.core.config import PrintworksConfig, config
from printworks.routing import ModelRouter, SubjectSignals, default_router
from printworks.storage import AssetResolver, PrintAssetUploader

__all__ = [
    "AdmissionController",
    "AssetResolver",
    "Identifier",
    "ModelRouter",
    "PrintAssetUploader",
    "PrintCompositor",
    "PrintworksConfig",
    "SubjectSignals",
    "composite",
    "config",
    "create_admission_controller",
    "default_router",
    "get_print_spec",
]
