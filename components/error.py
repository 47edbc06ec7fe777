"""
Errors raised by components while building the resource graph.

Only deterministic input problems are raised here. Failures coming from the
Pulumi engine or a cloud provider are never wrapped; they propagate as-is.
"""


class VisibleError(Exception):
    """An error whose message is meant to be shown to the user verbatim."""


class ValidationError(VisibleError):
    """User-supplied configuration is missing, malformed, or inconsistent."""


class DuplicateNameError(ValidationError):
    """Two components share a logical name within the same parent scope."""
