"""
Shared fixtures for the Mockup test suite.
"""

import pytest

from mockup.auth.tokens import TokenService
from mockup.mock.fixtures import MockupConfig
from mockup.mock.server import MockupServer, ServerConfig

TEST_SECRET = 'test-secret'


@pytest.fixture
def sample_config_dict():
    """Configuration document with a few fixtures and two users."""
    return {
        'baseURI': '/',
        'responseTime': {'min': 0, 'max': 0},
        'users': [
            {'username': 'user', 'password': '1234', 'fullName': 'Mock User', 'role': 'user'},
            {'username': 'admin', 'password': 'secret', 'fullName': 'Mock Admin', 'role': 'admin'},
        ],
        'services': {
            '/ic/project/services/WS_getCityList': {
                'name': 'WS_getCityList',
                'description': 'List cities',
                'method': 'POST',
                'response': {
                    'status': 200,
                    'body': {'content': {'cityList': [{'cityCode': 'BKK', 'cityName': 'Bangkok'}]}},
                },
            },
            '/ic/project/services/WS_SearchFlightList': {
                'name': 'WS_SearchFlightList',
                'description': 'Search flights',
                'method': 'POST',
                'request': {'content_type': 'application/json', 'body': {'origin': 'BKK'}},
                'response': {
                    'status': 200,
                    'body': {'content': {'flightList': [{'flightNo': 'TG102'}]}},
                    'headers': {'X-Mock': 'flights'},
                    'examples': [
                        {'status': 200, 'type': 'empty', 'body': {'content': {'flightList': []}}},
                        {'status': 500, 'body': {'error': 'Flight inventory unavailable'}},
                    ],
                },
            },
            'GET /products': {
                'name': 'List products',
                'response': {'status': 200, 'body': {'products': []}},
            },
        },
    }


@pytest.fixture
def config(sample_config_dict):
    return MockupConfig.from_dict(sample_config_dict)


@pytest.fixture
def token_service():
    return TokenService(secret=TEST_SECRET)


@pytest.fixture
def server(config, token_service):
    return MockupServer(config, ServerConfig(), token_service=token_service)


@pytest.fixture
def client(server):
    from fastapi.testclient import TestClient
    return TestClient(server.app)


@pytest.fixture
def auth_headers(token_service):
    """Bearer header for the default mock user."""
    from mockup.auth.tokens import SessionClaims
    token = token_service.issue(SessionClaims('user', 'Mock User', 'user'))
    return {'Authorization': f'Bearer {token}'}
