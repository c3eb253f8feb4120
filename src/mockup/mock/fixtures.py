"""
Mockup Fixture Store

Immutable configuration model for the mockup server.

Holds everything parsed from the configuration document:
- Base URI for the authentication endpoints
- Response time bounds for latency simulation
- Mock users
- Service fixtures (route table source)
- Optional hand-authored OpenAPI fragment
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..common.utils import ConfigInvalid, ConfigLoader

HTTP_METHODS = ('GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'HEAD', 'OPTIONS')

DEFAULT_USERS = [
    {'username': 'user', 'password': '1234', 'fullName': 'Mock User', 'role': 'user'},
]


def _require_mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigInvalid(f"{where} must be an object, got {type(value).__name__}")
    return value


def _require_status(value: Any, where: str) -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or not 100 <= value <= 599:
        raise ConfigInvalid(f"{where} must be an HTTP status code (100-599), got {value!r}")
    return value


def _require_json(value: Any, where: str) -> Any:
    """Reject values that json.dumps cannot encode (dates, sets, bytes, NaN)."""
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ConfigInvalid(f"{where} is not JSON-serializable: {e}") from e
    return value


def _validate_openapi(openapi: Mapping[str, Any]) -> Mapping[str, Any]:
    """Check the parts of a hand-authored OpenAPI fragment that get merged."""
    paths = _require_mapping(openapi.get('paths', {}), 'openapi.paths')
    for path, operations in paths.items():
        if not isinstance(path, str):
            raise ConfigInvalid(f"openapi.paths keys must be strings, got {path!r}")
        operations = _require_mapping(operations, f"openapi.paths[{path!r}]")
        for method, operation in operations.items():
            if not isinstance(method, str):
                raise ConfigInvalid(f"openapi.paths[{path!r}] keys must be strings, got {method!r}")
            _require_mapping(operation, f"openapi.paths[{path!r}].{method}")

    tags = openapi.get('tags', [])
    if not isinstance(tags, list):
        raise ConfigInvalid("openapi.tags must be a list")
    for i, tag in enumerate(tags):
        tag = _require_mapping(tag, f'openapi.tags[{i}]')
        if not isinstance(tag.get('name'), str) or not tag['name']:
            raise ConfigInvalid(f"openapi.tags[{i}].name must be a non-empty string")

    return _require_json(openapi, 'openapi')


@dataclass(frozen=True)
class ResponseTime:
    """Inclusive latency bounds in milliseconds."""

    min: int = 0
    max: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ResponseTime':
        if data is None:
            return cls()
        data = _require_mapping(data, 'responseTime')
        low = data.get('min', 0)
        high = data.get('max', low)
        for key, value in (('min', low), ('max', high)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigInvalid(f"responseTime.{key} must be a non-negative integer, got {value!r}")
        if low > high:
            raise ConfigInvalid(f"responseTime.min ({low}) must not exceed responseTime.max ({high})")
        return cls(min=low, max=high)


@dataclass(frozen=True)
class User:
    """Mock user account. Password is kept in plaintext."""

    username: str
    password: str
    full_name: str
    role: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: int = 0) -> 'User':
        data = _require_mapping(data, f'users[{index}]')
        username = data.get('username')
        password = data.get('password')
        if not isinstance(username, str) or not username:
            raise ConfigInvalid(f"users[{index}].username must be a non-empty string")
        if not isinstance(password, str):
            raise ConfigInvalid(f"users[{index}].password must be a string")
        return cls(
            username=username,
            password=password,
            full_name=str(data.get('fullName', username)),
            role=str(data.get('role', 'user')),
        )

    def check_password(self, password: Any) -> bool:
        return isinstance(password, str) and password == self.password

    def to_public_dict(self) -> Dict[str, str]:
        return {'username': self.username, 'fullName': self.full_name, 'role': self.role}


@dataclass(frozen=True)
class ResponseExample:
    """Alternative response selectable through the Prefer header."""

    status: int
    body: Any = None
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], where: str) -> 'ResponseExample':
        data = _require_mapping(data, where)
        example_type = data.get('type')
        if example_type is not None and not isinstance(example_type, str):
            raise ConfigInvalid(f"{where}.type must be a string")
        return cls(
            status=_require_status(data.get('status'), f'{where}.status'),
            body=_require_json(data.get('body'), f'{where}.body'),
            type=example_type,
        )


@dataclass(frozen=True)
class FixtureRequest:
    content_type: str = 'application/json'
    body: Any = None


@dataclass(frozen=True)
class FixtureResponse:
    status: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    examples: Tuple[ResponseExample, ...] = ()


@dataclass(frozen=True)
class Fixture:
    """One configured request/response pair simulating a backend route."""

    path: str
    method: str
    response: FixtureResponse
    name: str = ''
    description: str = ''
    request: Optional[FixtureRequest] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.method, self.path)

    def all_examples(self) -> List[ResponseExample]:
        """Primary response first, then the configured alternatives."""
        primary = ResponseExample(status=self.response.status, body=self.response.body)
        return [primary, *self.response.examples]

    @classmethod
    def from_dict(cls, route_key: str, data: Mapping[str, Any]) -> 'Fixture':
        """
        Create a fixture from a services entry.

        Args:
            route_key: Either a bare path or "<METHOD> <path>"
            data: Fixture body from the configuration document

        Returns:
            Parsed Fixture

        Raises:
            ConfigInvalid: If any field is missing or malformed
        """
        where = f'services[{route_key!r}]'
        data = _require_mapping(data, where)

        key_method, path = _split_route_key(route_key)
        declared = data.get('method')
        if declared is not None and not isinstance(declared, str):
            raise ConfigInvalid(f"{where}.method must be a string")
        declared = declared.upper() if declared else None
        if key_method and declared and key_method != declared:
            raise ConfigInvalid(f"{where} route key method {key_method} conflicts with method {declared}")
        method = key_method or declared or 'GET'
        if method not in HTTP_METHODS:
            raise ConfigInvalid(f"{where}.method {method!r} is not a supported HTTP method")

        response_data = data.get('response')
        if response_data is None:
            raise ConfigInvalid(f"{where}.response is required")
        response_data = _require_mapping(response_data, f'{where}.response')
        headers = response_data.get('headers') or {}
        headers = _require_mapping(headers, f'{where}.response.headers')
        examples = response_data.get('examples') or []
        if not isinstance(examples, list):
            raise ConfigInvalid(f"{where}.response.examples must be a list")
        response = FixtureResponse(
            status=_require_status(response_data.get('status', 200), f'{where}.response.status'),
            body=_require_json(response_data.get('body'), f'{where}.response.body'),
            headers=MappingProxyType({str(k): str(v) for k, v in headers.items()}),
            examples=tuple(
                ResponseExample.from_dict(example, f'{where}.response.examples[{i}]')
                for i, example in enumerate(examples)
            ),
        )

        request = None
        if data.get('request') is not None:
            request_data = _require_mapping(data['request'], f'{where}.request')
            request = FixtureRequest(
                content_type=str(request_data.get('content_type', 'application/json')),
                body=_require_json(request_data.get('body'), f'{where}.request.body'),
            )

        return cls(
            path=path,
            method=method,
            response=response,
            name=str(data.get('name', '')),
            description=str(data.get('description', '')),
            request=request,
        )


def _split_route_key(route_key: str) -> Tuple[Optional[str], str]:
    """Split "POST /orders" into ("POST", "/orders"); bare paths get no method."""
    if not isinstance(route_key, str) or not route_key.strip():
        raise ConfigInvalid(f"service route key must be a non-empty string, got {route_key!r}")
    parts = route_key.strip().split(None, 1)
    if len(parts) == 2 and parts[0].upper() in HTTP_METHODS:
        method, path = parts[0].upper(), parts[1].strip()
    else:
        method, path = None, route_key.strip()
    if not path.startswith('/'):
        raise ConfigInvalid(f"service path {path!r} must start with '/'")
    return method, path


@dataclass(frozen=True)
class MockupConfig:
    """
    Parsed mockup configuration, built once at startup and never mutated.

    Example:
        config = MockupConfig.from_dict({
            'baseURI': '/ic/project',
            'responseTime': {'min': 100, 'max': 300},
            'services': {
                '/ic/project/services/WS_getCityList': {
                    'name': 'Get city list',
                    'method': 'POST',
                    'response': {'status': 200, 'body': {'content': {'cityList': []}}}
                }
            }
        })
    """

    base_uri: str = ''
    response_time: ResponseTime = field(default_factory=ResponseTime)
    users: Tuple[User, ...] = ()
    fixtures: Tuple[Fixture, ...] = ()
    openapi: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> 'MockupConfig':
        data = _require_mapping(data, 'configuration')

        base_uri = data.get('baseURI', '')
        if not isinstance(base_uri, str):
            raise ConfigInvalid("baseURI must be a string")

        users_data = data.get('users', DEFAULT_USERS)
        if not isinstance(users_data, list):
            raise ConfigInvalid("users must be a list")
        users = tuple(User.from_dict(user, i) for i, user in enumerate(users_data))
        seen_users = set()
        for user in users:
            if user.username in seen_users:
                raise ConfigInvalid(f"duplicate username {user.username!r}")
            seen_users.add(user.username)

        services = _require_mapping(data.get('services', {}), 'services')
        fixtures = tuple(Fixture.from_dict(key, value) for key, value in services.items())
        seen_routes = set()
        for fixture in fixtures:
            if fixture.key in seen_routes:
                raise ConfigInvalid(f"duplicate service route {fixture.method} {fixture.path}")
            seen_routes.add(fixture.key)

        openapi = data.get('openapi') or {}
        openapi = _validate_openapi(_require_mapping(openapi, 'openapi'))

        return cls(
            base_uri=base_uri,
            response_time=ResponseTime.from_dict(data.get('responseTime')),
            users=users,
            fixtures=fixtures,
            openapi=MappingProxyType(dict(openapi)),
        )

    @classmethod
    def from_file(cls, file_path: str) -> 'MockupConfig':
        """
        Load and validate a JSON or YAML configuration file.

        Raises:
            ConfigInvalid: If the file is missing, unparsable or malformed
        """
        return cls.from_dict(ConfigLoader(file_path).load())

    def find_user(self, username: Any) -> Optional[User]:
        for user in self.users:
            if user.username == username:
                return user
        return None
