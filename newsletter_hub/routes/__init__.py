"""
API route modules.
"""

from .articles import router as articles_router
from .newsletters import router as newsletters_router
from .live import router as live_router
from .misc import router as misc_router

__all__ = [
    "articles_router",
    "newsletters_router",
    "live_router",
    "misc_router",
]
