"""FastAPI dependencies for the timeline service.

This module provides dependency injection functions for:
- Settings access (per application, so tests can inject their own)
- The local log store
- The vault API client

Example:
    >>> from fastapi import Depends
    >>> from src.api.deps import get_log_store

    >>> @app.get("/")
    >>> def endpoint(store = Depends(get_log_store)):
    ...     return {"root": str(store.data_root)}
"""

import logging

from fastapi import FastAPI, Request

from vault import LogStore, VaultClient

from .config import Settings


logger = logging.getLogger(__name__)


def init_app_state(app: FastAPI, settings: Settings) -> None:
    """Attach settings and data sources to the application state.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    app.state.settings = settings
    app.state.log_store = LogStore(settings.data_root)
    app.state.vault_client = VaultClient(
        base_url=settings.vault_base_url,
        timeout=settings.vault_timeout_sec,
    )
    logger.debug(
        "App state initialized: data_source=%s data_root=%s",
        settings.data_source,
        settings.data_root,
    )


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


def get_log_store(request: Request) -> LogStore:
    """Get the application's local log store."""
    return request.app.state.log_store


def get_vault_client(request: Request) -> VaultClient:
    """Get the application's vault API client."""
    return request.app.state.vault_client
