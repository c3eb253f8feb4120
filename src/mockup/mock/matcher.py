"""
Mockup Route Resolver

Maps an incoming (path, method) pair to a configured fixture.

Matching is an exact string match on the request path (query string
removed). The table is keyed by path, with methods stored per path, so a
known path requested with an unregistered method resolves to
"method not allowed" rather than "not found".
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlsplit

from .fixtures import Fixture

MATCHED = 'matched'
NOT_FOUND = 'not_found'
METHOD_NOT_ALLOWED = 'method_not_allowed'


@dataclass
class RouteMatch:
    """Result of resolving a request."""

    outcome: str
    fixture: Optional[Fixture] = None
    allowed_methods: List[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.outcome == MATCHED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'outcome': self.outcome,
            'fixture': self.fixture.name if self.fixture else None,
            'allowed_methods': self.allowed_methods,
        }


def normalize_path(raw_path: str) -> str:
    """Strip query string and fragment; nothing else is normalized."""
    if '?' not in raw_path and '#' not in raw_path:
        return raw_path
    return urlsplit(raw_path).path


class RouteResolver:
    """
    Exact-match routing table built once from the fixture store.

    Example:
        resolver = RouteResolver(config.fixtures)
        result = resolver.resolve('/ic/project/services/WS_getCityList', 'POST')

        if result.matched:
            print(result.fixture.name)
    """

    def __init__(self, fixtures: Iterable[Fixture]):
        """
        Build the routing table.

        Args:
            fixtures: Fixtures from the configuration

        Raises:
            ValueError: If two fixtures share the same method and path
        """
        table: Dict[str, Dict[str, Fixture]] = {}
        for fixture in fixtures:
            methods = table.setdefault(fixture.path, {})
            if fixture.method in methods:
                raise ValueError(f"Duplicate route: {fixture.method} {fixture.path}")
            methods[fixture.method] = fixture

        self.table: Mapping[str, Mapping[str, Fixture]] = MappingProxyType({
            path: MappingProxyType(methods) for path, methods in table.items()
        })

    def __len__(self) -> int:
        return sum(len(methods) for methods in self.table.values())

    def resolve(self, path: str, method: str) -> RouteMatch:
        """
        Resolve a request to a fixture.

        Args:
            path: Request path (a query string, if present, is ignored)
            method: HTTP method, case-insensitive

        Returns:
            RouteMatch with outcome matched, not_found or method_not_allowed
        """
        methods = self.table.get(normalize_path(path))
        if methods is None:
            return RouteMatch(outcome=NOT_FOUND)

        fixture = methods.get(method.upper())
        if fixture is None:
            return RouteMatch(outcome=METHOD_NOT_ALLOWED, allowed_methods=sorted(methods))

        return RouteMatch(outcome=MATCHED, fixture=fixture, allowed_methods=sorted(methods))
