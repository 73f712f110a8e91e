"""clinirec - Session and navigation access control."""

from clinirec.auth.guard import Allow, NavigationDecision, NavigationGuard, RedirectTo
from clinirec.auth.routes import NavigationPaths, Route, RouteTable, default_routes
from clinirec.auth.session import SessionManager

__all__ = [
    "Allow",
    "NavigationDecision",
    "NavigationGuard",
    "NavigationPaths",
    "RedirectTo",
    "Route",
    "RouteTable",
    "SessionManager",
    "default_routes",
]
