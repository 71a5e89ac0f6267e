"""Queue-backed notification service: HTTP intake, Redis job queue, and push delivery workers."""

__version__ = "0.1.0"