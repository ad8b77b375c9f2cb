"""Common utilities shared across the engine.

Includes:
- ``config``: Pydantic-based engine configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.

Import pattern:
- from contact_search.common.config import SearchConfig
- from contact_search.common.logging import configure_logging
"""
