"""Data model, configuration and event plumbing for instrumenting async programs."""

__version__ = "0.1.0"

__all__ = [
    "addr",
    "attribute",
    "builder",
    "callsites",
    "envconfig",
    "events",
    "layer",
    "messages",
    "models",
    "records",
]