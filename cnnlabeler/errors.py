"""
Exception types raised by the labeler graph.

Binding errors are raised before any slot is touched; forward errors
propagate to the caller as-is.
"""

from __future__ import annotations


class GraphBuilderError(Exception):
    """Base class for all labeler graph errors."""


class CapacityExceededError(GraphBuilderError):
    """A sequence is longer than the slots available to process it."""


class UninitializedUseError(GraphBuilderError, RuntimeError):
    """A node or builder was used before it was sized and bound."""


class ParameterMismatchError(GraphBuilderError, ValueError):
    """Configured dimensions disagree with the actual weight shapes."""


class MalformedFeatureError(GraphBuilderError, ValueError):
    """A Feature cannot be processed (empty, bad token id, ...)."""
