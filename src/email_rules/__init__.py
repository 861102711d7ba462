"""Rule evaluation for inbound email: deterministic matching with AI tie-breaking."""

__version__ = "0.1.0"
