from .app import create_app
from .middleware import IdempotencyMiddleware, RequestLoggingMiddleware

__all__ = ["create_app", "IdempotencyMiddleware", "RequestLoggingMiddleware"]
