"""Admission control: per-client request quotas checked before expensive work."""

from printworks.admission.backends import LocalWindowBackend, SharedLogBackend, WindowBackend
from printworks.admission.controller import AdmissionController, create_admission_controller
from printworks.admission.windows import AdmissionResult, Identifier, window_bucket, window_key

__all__ = [
    "AdmissionController",
    "AdmissionResult",
    "Identifier",
    "LocalWindowBackend",
    "SharedLogBackend",
    "WindowBackend",
    "create_admission_controller",
    "window_bucket",
    "window_key",
]
