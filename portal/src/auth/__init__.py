"""
Authentication package.

Exports the admin token registry and the principal it yields; the FastAPI
dependency that enforces it lives in ``portal.src.api.deps``.

CHANGELOG:
- 2026-10-12: Export AdminTokens and AdminPrincipal (STORY-113)
- 2026-10-08: Initial creation (STORY-111)

TODO:
- None
"""

from portal.src.auth.bearer import AdminPrincipal, AdminTokenError, AdminTokens

__all__ = ["AdminPrincipal", "AdminTokenError", "AdminTokens"]
