"""Request building and validation for an application runtime sidecar."""

__version__ = "1.0.0rc3"

__all__ = [
    "cloudevents",
    "endpoint",
    "errors",
    "invoke",
    "lock",
    "metadata",
    "scheduling",
    "state",
]