"""
Exception taxonomy for the live face-metrics loop.

None of these are fatal to the application: the render loop catches each one
at the point where it can degrade gracefully.
"""


class FaceTrustError(Exception):
    """Base class for all application errors."""


class CameraUnavailable(FaceTrustError):
    """Camera could not be acquired: permission denied, no device, or unsupported backend."""


class ModelLoadFailure(FaceTrustError):
    """A face-analysis model could not be built or its weights fetched."""

    def __init__(self, kind: str, message: str = ""):
        self.kind = kind
        super().__init__(f"failed to load model {kind!r}" + (f": {message}" if message else ""))


class TransientDetectionError(FaceTrustError):
    """A single inference call failed or timed out; the next tick may succeed."""
