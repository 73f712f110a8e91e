"""Navigation guard.

``decide`` is a pure function of the target route and a session snapshot.
Rules apply in order and the first match wins:

1. auth required but not logged in -> entry path
2. login route while logged in -> default landing
3. role allow-list not satisfied -> the landing of the user's own role,
   or the entry path for a user without a known role
4. otherwise allow
"""

from dataclasses import dataclass
import logging

from clinirec.auth.routes import NavigationPaths, Route, RouteTable, default_routes
from clinirec.models.auth import SessionSnapshot, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Allow:
    path: str


@dataclass(frozen=True)
class RedirectTo:
    path: str


NavigationDecision = Allow | RedirectTo


class NavigationGuard:
    """Decides whether a navigation proceeds or is redirected."""

    def __init__(
        self,
        routes: RouteTable | None = None,
        paths: NavigationPaths | None = None,
    ) -> None:
        self.paths = paths or NavigationPaths()
        self.routes = routes or default_routes(self.paths)

    def decide(self, target: Route, session: SessionSnapshot) -> NavigationDecision:
        if target.requires_auth and not session.is_logged_in:
            return RedirectTo(self.paths.entry)

        if target.is_login and session.is_logged_in:
            return RedirectTo(self.paths.landing)

        if target.has_role_restriction and session.role not in target.roles:
            if session.role is UserRole.ADMIN:
                return RedirectTo(self.paths.admin_landing)
            if session.role is UserRole.PRACTITIONER:
                return RedirectTo(self.paths.practitioner_landing)
            return RedirectTo(self.paths.entry)

        return Allow(target.path)

    def navigate(self, path: str, session: SessionSnapshot) -> NavigationDecision:
        """Resolve ``path`` against the route table and decide.

        Unknown paths redirect to the entry path.
        """
        route = self.routes.resolve(path)
        if route is None:
            logger.debug("No route for %s, redirecting to entry", path)
            return RedirectTo(self.paths.entry)
        decision = self.decide(route, session)
        if isinstance(decision, RedirectTo):
            logger.debug("Navigation to %s redirected to %s", route.path, decision.path)
        return decision
