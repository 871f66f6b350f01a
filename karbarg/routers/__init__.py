"""API routers."""
from karbarg.routers import admin, career_paths, cron, health, microcopy, qa

__all__ = ["admin", "career_paths", "cron", "health", "microcopy", "qa"]
