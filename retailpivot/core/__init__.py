"""Core infrastructure: config, logging, middleware, exceptions."""

from retailpivot.core.config import Settings, get_settings
from retailpivot.core.logging import bind_view_id, get_logger, request_id_ctx

__all__ = [
    "Settings",
    "bind_view_id",
    "get_logger",
    "get_settings",
    "request_id_ctx",
]
