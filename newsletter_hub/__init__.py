"""
Newsletter Hub Backend

A FastAPI backend for aggregating newsletters.
Provides RSS polling, OPML import, article publishing and live updates.
"""

__version__ = "1.0.0"
