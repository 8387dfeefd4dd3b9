"""Configuration, structured logging, templates and helpers, redirects, scheduling, visitor stats and payment webhook events."""

__version__ = "0.1.0"