"""Observability sink implementations."""

from .base import ObservabilitySink
from .in_memory import InMemoryObservabilitySink
from .otlp import OTelObservabilitySink

__all__ = [
    "ObservabilitySink",
    "InMemoryObservabilitySink",
    "OTelObservabilitySink",
]
