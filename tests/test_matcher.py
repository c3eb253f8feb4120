"""
Tests for the Mockup Route Resolver

Tests request routing including:
- Exact path and method matching
- Not-found and method-not-allowed outcomes
- Query string handling
- Duplicate route detection
"""

import pytest

from mockup.mock.fixtures import Fixture
from mockup.mock.matcher import (
    MATCHED,
    METHOD_NOT_ALLOWED,
    NOT_FOUND,
    RouteResolver,
    normalize_path,
)


@pytest.fixture
def resolver(config):
    return RouteResolver(config.fixtures)


def make_fixture(route_key, status=200):
    return Fixture.from_dict(route_key, {'response': {'status': status, 'body': {}}})


class TestRouteResolver:
    """Test RouteResolver lookups."""

    def test_exact_match(self, resolver):
        """Test resolving a configured path and method."""
        result = resolver.resolve('/ic/project/services/WS_getCityList', 'POST')

        assert result.outcome == MATCHED
        assert result.matched
        assert result.fixture.name == 'WS_getCityList'

    def test_method_case_insensitive(self, resolver):
        result = resolver.resolve('/products', 'get')

        assert result.matched

    @pytest.mark.parametrize('method', ['GET', 'POST', 'PUT', 'DELETE', 'PATCH'])
    def test_unknown_path(self, resolver, method):
        """Test an unconfigured path is not found for every method."""
        result = resolver.resolve('/ic/project/services/WS_Unknown', method)

        assert result.outcome == NOT_FOUND
        assert result.fixture is None

    def test_method_not_allowed(self, resolver):
        """Test a known path with an unregistered method."""
        result = resolver.resolve('/ic/project/services/WS_getCityList', 'GET')

        assert result.outcome == METHOD_NOT_ALLOWED
        assert result.fixture is None
        assert result.allowed_methods == ['POST']

    def test_allowed_methods_sorted(self):
        """Test all methods of a path are reported."""
        resolver = RouteResolver([make_fixture('POST /orders', 201), make_fixture('GET /orders')])

        result = resolver.resolve('/orders', 'DELETE')

        assert result.allowed_methods == ['GET', 'POST']

    def test_same_path_different_methods(self):
        resolver = RouteResolver([make_fixture('POST /orders', 201), make_fixture('GET /orders')])

        assert resolver.resolve('/orders', 'POST').fixture.response.status == 201
        assert resolver.resolve('/orders', 'GET').fixture.response.status == 200
        assert len(resolver) == 2

    def test_query_string_ignored(self, resolver):
        result = resolver.resolve('/products?page=2&size=10', 'GET')

        assert result.matched

    def test_no_trailing_slash_normalization(self, resolver):
        """Test paths are matched exactly."""
        assert resolver.resolve('/products/', 'GET').outcome == NOT_FOUND
        assert resolver.resolve('/Products', 'GET').outcome == NOT_FOUND

    def test_no_prefix_matching(self, resolver):
        assert resolver.resolve('/ic/project/services', 'POST').outcome == NOT_FOUND

    def test_duplicate_route(self):
        """Test duplicate method and path are rejected."""
        with pytest.raises(ValueError, match='Duplicate route'):
            RouteResolver([make_fixture('GET /orders'), make_fixture('GET /orders', 204)])

    def test_table_is_read_only(self, resolver):
        with pytest.raises(TypeError):
            resolver.table['/new'] = {}

    def test_empty_resolver(self):
        resolver = RouteResolver([])

        assert len(resolver) == 0
        assert resolver.resolve('/', 'GET').outcome == NOT_FOUND

    def test_to_dict(self, resolver):
        result = resolver.resolve('/products', 'GET')

        assert result.to_dict() == {
            'outcome': MATCHED,
            'fixture': 'List products',
            'allowed_methods': ['GET'],
        }


class TestNormalizePath:
    """Test normalize_path."""

    @pytest.mark.parametrize('raw,expected', [
        ('/products', '/products'),
        ('/products?page=1', '/products'),
        ('/products#top', '/products'),
        ('/a/b/?x=1', '/a/b/'),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_path(raw) == expected
