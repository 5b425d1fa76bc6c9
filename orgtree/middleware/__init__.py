"""Request-level dependencies: authentication and CSRF"""

from orgtree.middleware.auth import get_current_user, require_superuser
from orgtree.middleware.csrf import get_csrf_service, require_csrf

__all__ = [
    "get_current_user",
    "require_superuser",
    "get_csrf_service",
    "require_csrf",
]
