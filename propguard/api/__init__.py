from .policy import router as policy_router

__all__ = ["policy_router"]
