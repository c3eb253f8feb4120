"""
Mockup Server Module

Mock HTTP server functionality for serving configured fixtures.

This module provides:
- Immutable fixture store loaded from configuration
- Exact-match route resolver
- Response negotiation with Prefer-header scenarios and latency
- OpenAPI document synthesis
- FastAPI-based dispatcher and server
"""

from .fixtures import (
    Fixture,
    FixtureRequest,
    FixtureResponse,
    MockupConfig,
    ResponseExample,
    ResponseTime,
    User,
)
from .matcher import RouteResolver, RouteMatch
from .generator import (
    ResponseNegotiator,
    NegotiatedResponse,
    Preference,
    parse_preference,
)
from .openapi import SpecSynthesizer, build_auth_document, merge_documents
from .server import (
    Dispatcher,
    MalformedRequestBody,
    MockupServer,
    ServerConfig,
    create_mockup_server,
)

__all__ = [
    # Fixture store
    'Fixture',
    'FixtureRequest',
    'FixtureResponse',
    'MockupConfig',
    'ResponseExample',
    'ResponseTime',
    'User',

    # Resolver
    'RouteResolver',
    'RouteMatch',

    # Negotiator
    'ResponseNegotiator',
    'NegotiatedResponse',
    'Preference',
    'parse_preference',

    # OpenAPI
    'SpecSynthesizer',
    'build_auth_document',
    'merge_documents',

    # Server
    'Dispatcher',
    'MalformedRequestBody',
    'MockupServer',
    'ServerConfig',
    'create_mockup_server',
]
