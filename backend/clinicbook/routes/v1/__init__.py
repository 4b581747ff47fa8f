"""
API v1 routes.

Each module exposes a `router` without a prefix; prefixes are applied when
the routers are mounted under /api/v1 in main.py.
"""
