"""
API routers package.
"""
from app.routers import projects

__all__ = ["projects"]
