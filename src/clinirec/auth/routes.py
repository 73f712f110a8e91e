"""Route table of the client's navigation surface.

Public login entry, an authenticated dashboard, practitioner-only clinical
areas and an administrator-only settings area.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from clinirec.core.config import Settings
from clinirec.models.auth import UserRole


@dataclass(frozen=True)
class Route:
    """One navigable location and its access requirements."""

    path: str
    name: str
    requires_auth: bool = False
    roles: frozenset[UserRole] = field(default_factory=frozenset)
    is_login: bool = False

    @property
    def has_role_restriction(self) -> bool:
        return bool(self.roles)


@dataclass(frozen=True)
class NavigationPaths:
    """Redirect targets used by the guard."""

    entry: str = "/"
    landing: str = "/dashboard"
    admin_landing: str = "/dashboard/settings"
    practitioner_landing: str = "/dashboard/appointments"

    @classmethod
    def from_settings(cls, settings: Settings) -> "NavigationPaths":
        return cls(
            entry=normalize_path(settings.entry_path),
            landing=normalize_path(settings.landing_path),
            admin_landing=normalize_path(settings.admin_landing_path),
            practitioner_landing=normalize_path(settings.practitioner_landing_path),
        )


def normalize_path(path: str) -> str:
    """Drop query, fragment and trailing slash; ``""`` becomes ``/``."""
    path = path.split("#", 1)[0].split("?", 1)[0].strip()
    if not path.startswith("/"):
        path = f"/{path}"
    return path.rstrip("/") or "/"


class RouteTable:
    """Path lookup over a fixed set of routes."""

    def __init__(self, routes: Iterable[Route]) -> None:
        self._routes: dict[str, Route] = {}
        for route in routes:
            self._routes[normalize_path(route.path)] = route

    def resolve(self, path: str) -> Route | None:
        """Return the route registered for ``path``; None for unknown paths."""
        return self._routes.get(normalize_path(path))


PRACTITIONER_ONLY = frozenset({UserRole.PRACTITIONER})
ADMIN_ONLY = frozenset({UserRole.ADMIN})


def default_routes(paths: NavigationPaths | None = None) -> RouteTable:
    paths = paths or NavigationPaths()
    return RouteTable(
        [
            Route(paths.entry, "login", is_login=True),
            Route(paths.landing, "dashboard", requires_auth=True),
            Route(
                paths.practitioner_landing,
                "appointments",
                requires_auth=True,
                roles=PRACTITIONER_ONLY,
            ),
            Route("/dashboard/patients", "patients", requires_auth=True, roles=PRACTITIONER_ONLY),
            Route(
                "/dashboard/practitioner",
                "practitioner",
                requires_auth=True,
                roles=PRACTITIONER_ONLY,
            ),
            Route(
                "/dashboard/blood-pressure",
                "blood_pressure",
                requires_auth=True,
                roles=PRACTITIONER_ONLY,
            ),
            Route(paths.admin_landing, "settings", requires_auth=True, roles=ADMIN_ONLY),
        ]
    )
