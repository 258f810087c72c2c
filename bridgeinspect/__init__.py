"""Response envelope, request context, middleware, handlers, cache and configuration for a bridge defect inspection service."""

__version__ = "0.1.0"