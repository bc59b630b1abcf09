"""Shared Flask extensions for the application."""
from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy

from .cache import TTLCache

# SQLAlchemy database instance shared across the app.
db = SQLAlchemy()

# Catalogue cache (services, weekly availability).
cache = TTLCache()
