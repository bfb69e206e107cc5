from tape16.api.server import (
    app,
    create_app,
    cors_headers,
    normalize_path,
)
from tape16.api.container import ServiceContainer

__all__ = [
    "app",
    "create_app",
    "cors_headers",
    "normalize_path",
    "ServiceContainer",
]
