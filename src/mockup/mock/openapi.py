"""
Mockup OpenAPI Synthesizer

Derives an OpenAPI 3 document describing the simulated surface from the
fixture table, and merges hand-authored fragments (the authentication
endpoints, or an `openapi` section of the configuration) over it.
"""

import copy
import re
from collections import OrderedDict
from http import HTTPStatus
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..common.utils import join_uri
from .fixtures import Fixture

OPENAPI_VERSION = '3.0.3'
AUTH_TAG = 'Authentication'
SERVICES_TAG = 'Services'
BODY_METHODS = ('post', 'put', 'patch', 'delete')


def _json_content(example: Any) -> Dict[str, Any]:
    return {'application/json': {'example': example}}


def build_auth_document(base_uri: str = '') -> Dict[str, Any]:
    """Hand-authored description of the login, status and logout endpoints."""
    user_example = {'username': 'user', 'fullName': 'Mock User', 'role': 'user'}
    unauthorized = {'description': 'Unauthorized', 'content': _json_content({'error': 'Unauthorized'})}

    return {
        'tags': [{'name': AUTH_TAG, 'description': 'Session management for the mock backend'}],
        'paths': {
            join_uri(base_uri, '/api/auth/login'): {
                'post': {
                    'tags': [AUTH_TAG],
                    'summary': 'Log in',
                    'description': (
                        'Checks the credentials against the configured users. Sets the '
                        'session cookie, or returns the token in the body when '
                        '`return_token_in_response` is true.'
                    ),
                    'operationId': 'authLogin',
                    'requestBody': {
                        'required': True,
                        'content': _json_content({
                            'username': 'user',
                            'password': '1234',
                            'return_token_in_response': False,
                        }),
                    },
                    'responses': {
                        '200': {
                            'description': 'Logged in',
                            'content': _json_content({'message': 'Logged in successfully'}),
                        },
                        '400': {
                            'description': 'Invalid request body',
                            'content': _json_content({'error': 'Invalid request body'}),
                        },
                        '401': {
                            'description': 'Invalid credentials',
                            'content': _json_content({'error': 'Invalid username or password'}),
                        },
                    },
                },
            },
            join_uri(base_uri, '/api/auth/status'): {
                'get': {
                    'tags': [AUTH_TAG],
                    'summary': 'Current session',
                    'operationId': 'authStatus',
                    'responses': {
                        '200': {'description': 'Authenticated user', 'content': _json_content({'user': user_example})},
                        '401': unauthorized,
                    },
                },
            },
            join_uri(base_uri, '/api/auth/logout'): {
                'post': {
                    'tags': [AUTH_TAG],
                    'summary': 'Log out',
                    'description': 'Clears the session cookie.',
                    'operationId': 'authLogout',
                    'responses': {
                        '200': {'description': 'Logged out', 'content': _json_content({'message': 'Logged out successfully'})},
                        '401': unauthorized,
                    },
                },
            },
        },
    }


def _operation_id(fixture: Fixture) -> str:
    slug = re.sub(r'[^0-9A-Za-z]+', '_', fixture.path).strip('_') or 'root'
    return f"{fixture.method.lower()}_{slug}"


def _status_description(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f'Status {status}'


def merge_documents(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge two OpenAPI documents.

    Values from `override` win. Operations under `paths` are replaced whole
    per (path, method) rather than merged field by field. Tags are unioned by
    name, with the Authentication tag moved to the front.
    """
    merged = copy.deepcopy(dict(base))

    for key, value in override.items():
        if key == 'paths':
            paths = merged.setdefault('paths', {})
            for path, operations in value.items():
                target = paths.setdefault(path, {})
                for method, operation in operations.items():
                    target[method.lower()] = copy.deepcopy(operation)
        elif key == 'tags':
            merged['tags'] = _merge_tags(merged.get('tags', []), value)
        elif isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)

    if 'tags' in merged:
        merged['tags'] = _order_tags(merged['tags'])
    return merged


def _merge_tags(existing: Iterable[Mapping[str, Any]], extra: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    by_name: 'OrderedDict[str, Dict[str, Any]]' = OrderedDict()
    for tag in list(existing) + list(extra):
        by_name[tag['name']] = {**by_name.get(tag['name'], {}), **tag}
    return list(by_name.values())


def _order_tags(tags: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(tags, key=lambda tag: tag.get('name') != AUTH_TAG)


class SpecSynthesizer:
    """
    Builds the OpenAPI document for the configured fixtures.

    The document is computed on first access and cached; fixtures never
    change after startup.

    Example:
        synthesizer = SpecSynthesizer(config.fixtures, overrides=[build_auth_document(config.base_uri)])
        document = synthesizer.document
    """

    def __init__(
        self,
        fixtures: Iterable[Fixture],
        title: str = 'Mockup Server',
        version: str = '1.0.0',
        description: str = 'Simulated backend generated from the mockup configuration',
        servers: Optional[List[Dict[str, Any]]] = None,
        overrides: Optional[Iterable[Mapping[str, Any]]] = None
    ):
        self.fixtures = tuple(fixtures)
        self.info = {'title': title, 'version': version, 'description': description}
        self.servers = servers or [{'url': '/'}]
        self.overrides = [copy.deepcopy(dict(o)) for o in (overrides or [])]
        self._document: Optional[Dict[str, Any]] = None

    def build_operation(self, fixture: Fixture) -> Dict[str, Any]:
        """One OpenAPI operation for a fixture."""
        operation: Dict[str, Any] = {
            'tags': [SERVICES_TAG],
            'summary': fixture.description or fixture.name or f"{fixture.method} {fixture.path}",
            'operationId': _operation_id(fixture),
        }
        if fixture.name and fixture.description:
            operation['x-fixture-name'] = fixture.name

        # The {} default applies to body methods only; a configured request is always shown
        request = fixture.request
        if request is not None or fixture.method.lower() in BODY_METHODS:
            example = request.body if request and request.body is not None else {}
            content_type = request.content_type if request else 'application/json'
            operation['requestBody'] = {'content': {content_type: {'example': example}}}

        responses: Dict[str, Any] = {}
        for example in fixture.all_examples():
            entry = responses.setdefault(str(example.status), {
                'description': _status_description(example.status),
                'content': {'application/json': {}},
            })
            media = entry['content']['application/json']
            if 'example' not in media and 'examples' not in media:
                media['example'] = example.body
                if example.type:
                    media['x-type'] = example.type
            else:
                # several examples for one status: switch to named examples
                if 'example' in media:
                    first_name = media.pop('x-type', None) or 'default'
                    media['examples'] = {first_name: {'value': media.pop('example')}}
                name = example.type or f"example{len(media['examples']) + 1}"
                media['examples'][name] = {'value': example.body}

        for entry in responses.values():
            entry['content']['application/json'].pop('x-type', None)
        operation['responses'] = responses
        return operation

    def synthesize(self) -> Dict[str, Any]:
        """
        Build the full document from the fixtures and the overrides.

        Returns:
            OpenAPI document as a plain dict
        """
        paths: Dict[str, Dict[str, Any]] = {}
        for fixture in self.fixtures:
            paths.setdefault(fixture.path, {})[fixture.method.lower()] = self.build_operation(fixture)

        document: Dict[str, Any] = {
            'openapi': OPENAPI_VERSION,
            'info': dict(self.info),
            'servers': copy.deepcopy(self.servers),
            'tags': [{'name': SERVICES_TAG, 'description': 'Configured service fixtures'}] if self.fixtures else [],
            'paths': paths,
        }

        for override in self.overrides:
            document = merge_documents(document, override)
        return document

    @property
    def document(self) -> Dict[str, Any]:
        if self._document is None:
            self._document = self.synthesize()
        return self._document
