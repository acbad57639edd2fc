"""PropGuard: Identity-Override Policy-Engine."""

__version__ = "1.0.0"
