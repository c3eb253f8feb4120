"""
Mockup Server

FastAPI-based HTTP server simulating a backend from a fixture configuration.

Features:
- Session authentication (login, status, logout) with cookie or bearer tokens
- Exact-match routing to configured fixtures (404 / 405 on misses)
- Scenario selection with the Prefer header
- Simulated latency within configured bounds
- OpenAPI document and Swagger UI derived from the fixtures
"""

from __future__ import annotations  # Enable forward references for type hints

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse

from ..auth.tokens import AuthError, SessionClaims, TokenService, extract_token
from ..common.utils import (
    describe_config,
    get_previous_secrets_from_env,
    get_session_secret_from_env,
    join_uri,
)
from .fixtures import MockupConfig
from .generator import FALLBACK_ECHO, ResponseNegotiator, parse_preference
from .matcher import METHOD_NOT_ALLOWED, NOT_FOUND, RouteResolver
from .openapi import SpecSynthesizer, build_auth_document

logger = logging.getLogger("mockup.mock")

SESSION_COOKIE = 'wst-runtime-session'
SUPPORTED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, POST, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization, Prefer',
}

# Statuses that must not carry a body on the wire
BODYLESS_STATUSES = {204, 304}


class MalformedRequestBody(ValueError):
    """Raised when a request body cannot be parsed."""


@dataclass
class ServerConfig:
    """Configuration for server behavior (not the simulated surface)."""

    # Server options
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "info"

    # Response behavior
    prefer_fallback: str = FALLBACK_ECHO  # echo, unavailable

    # Session
    cookie_name: str = SESSION_COOKIE
    token_lifetime_hours: int = 24
    cookie_secure: bool = False

    # Documentation
    docs_enabled: bool = True
    openapi_path: str = "/openapi-json"
    docs_path: str = "/docs"

    @property
    def token_lifetime(self) -> timedelta:
        return timedelta(hours=self.token_lifetime_hours)


def _error(status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(content={'error': message}, status_code=status_code, headers=headers)


class Dispatcher:
    """
    Per-request state machine of the mockup server.

    Steps, each of which may end the request:
        1. CORS preflight (OPTIONS) answered with 204
        2. Public routes: login, OpenAPI document, docs page
        3. Authentication gate (cookie first, then bearer header)
        4. Auth status and logout endpoints
        5. Fixture dispatch: resolver, then negotiator

    Any unexpected exception becomes a generic 500.
    """

    def __init__(
        self,
        config: MockupConfig,
        server_config: ServerConfig,
        token_service: TokenService,
        resolver: Optional[RouteResolver] = None,
        negotiator: Optional[ResponseNegotiator] = None,
        synthesizer: Optional[SpecSynthesizer] = None
    ):
        self.config = config
        self.server_config = server_config
        self.tokens = token_service
        self.resolver = resolver or RouteResolver(config.fixtures)
        self.negotiator = negotiator or ResponseNegotiator(
            config.response_time,
            fallback=server_config.prefer_fallback
        )
        self.synthesizer = synthesizer or SpecSynthesizer(
            config.fixtures,
            overrides=[build_auth_document(config.base_uri), config.openapi]
        )

        self.login_path = join_uri(config.base_uri, '/api/auth/login')
        self.status_path = join_uri(config.base_uri, '/api/auth/status')
        self.logout_path = join_uri(config.base_uri, '/api/auth/logout')

        self.public_routes: Dict[tuple, Callable[[Request], Awaitable[Response]]] = {
            ('POST', self.login_path): self.login,
        }
        if server_config.docs_enabled:
            self.public_routes[('GET', server_config.openapi_path)] = self.openapi_document
            self.public_routes[('GET', server_config.docs_path)] = self.docs_page

    async def dispatch(self, request: Request) -> Response:
        """
        Handle one request and always return a response with CORS headers.

        Args:
            request: FastAPI Request object

        Returns:
            FastAPI Response
        """
        try:
            response = await self._dispatch(request)
        except Exception:
            logger.exception(f"Unhandled error for {request.method} {request.url.path}")
            response = _error(500, 'Internal Server Error')

        response.headers.update(CORS_HEADERS)
        return response

    async def _dispatch(self, request: Request) -> Response:
        method = request.method.upper()
        path = request.url.path
        logger.debug(f"Incoming: {method} {path}")

        if method == 'OPTIONS':
            return Response(status_code=204)

        public_handler = self.public_routes.get((method, path))
        if public_handler is not None:
            return await public_handler(request)

        claims = self.authenticate(request)
        if claims is None:
            return _error(401, 'Unauthorized')
        request.state.user = claims

        if method == 'GET' and path == self.status_path:
            return JSONResponse(content={'user': claims.to_public_dict()})
        if method == 'POST' and path == self.logout_path:
            return self.logout(claims)

        return await self.serve_fixture(request, method, path)

    def authenticate(self, request: Request) -> Optional[SessionClaims]:
        """Return the session identity, or None if the request is unauthorized."""
        token = extract_token(request.cookies, request.headers, self.server_config.cookie_name)
        if token is None:
            logger.info(f"No session credential for {request.method} {request.url.path}")
            return None

        try:
            return self.tokens.verify(token)
        except AuthError as e:
            # Clients only ever see a plain 401; the reason stays in the log
            logger.warning(f"Rejected session token for {request.method} {request.url.path}: {e.reason}")
            return None

    async def read_json_body(self, request: Request) -> Dict[str, Any]:
        raw = await request.body()
        try:
            body = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedRequestBody(f"Body is not valid JSON: {e}") from e
        if not isinstance(body, dict):
            raise MalformedRequestBody("Body must be a JSON object")
        return body

    async def login(self, request: Request) -> Response:
        """Check credentials and open a session."""
        try:
            body = await self.read_json_body(request)
            username = body.get('username')
            password = body.get('password')
            if not isinstance(username, str) or not isinstance(password, str):
                raise MalformedRequestBody("username and password must be strings")
        except MalformedRequestBody as e:
            logger.info(f"Rejected login request: {e}")
            return _error(400, 'Invalid request body')

        user = self.config.find_user(username)
        if user is None or not user.check_password(password):
            logger.info(f"Failed login for {username!r}")
            return _error(401, 'Invalid username or password')

        token = self.tokens.issue(SessionClaims(user.username, user.full_name, user.role))
        logger.info(f"User {user.username} logged in")

        if body.get('return_token_in_response') is True:
            return JSONResponse(content={'message': 'Logged in successfully', 'access_token': token})

        response = JSONResponse(content={'message': 'Logged in successfully'})
        response.set_cookie(
            self.server_config.cookie_name,
            token,
            max_age=int(self.tokens.lifetime.total_seconds()),
            path='/',
            httponly=True,
            secure=self.server_config.cookie_secure,
        )
        return response

    def logout(self, claims: SessionClaims) -> Response:
        logger.info(f"User {claims.username} logged out")
        response = JSONResponse(content={'message': 'Logged out successfully'})
        response.delete_cookie(
            self.server_config.cookie_name,
            path='/',
            httponly=True,
            secure=self.server_config.cookie_secure,
        )
        return response

    async def openapi_document(self, request: Request) -> Response:
        return JSONResponse(content=self.synthesizer.document)

    async def docs_page(self, request: Request) -> Response:
        return get_swagger_ui_html(
            openapi_url=self.server_config.openapi_path,
            title=f"{self.synthesizer.info['title']} - Docs",
        )

    async def serve_fixture(self, request: Request, method: str, path: str) -> Response:
        """Resolve the fixture for the request and return its negotiated response."""
        match = self.resolver.resolve(path, method)

        if match.outcome == NOT_FOUND:
            logger.warning(f"No fixture for {method} {path}")
            return _error(404, 'Not Found')
        if match.outcome == METHOD_NOT_ALLOWED:
            logger.warning(f"Method {method} not allowed for {path} (allowed: {', '.join(match.allowed_methods)})")
            return _error(405, 'Method Not Allowed', headers={'Allow': ', '.join(match.allowed_methods)})

        preference = parse_preference(request.headers.get('prefer'))
        negotiated = await self.negotiator.negotiate(match.fixture, preference)
        logger.info(f"{method} {path} -> {negotiated.status} ({match.fixture.name or 'unnamed fixture'})")

        if negotiated.body is None or negotiated.status in BODYLESS_STATUSES or negotiated.status < 200:
            return Response(status_code=negotiated.status, headers=negotiated.headers)
        return JSONResponse(content=negotiated.body, status_code=negotiated.status, headers=negotiated.headers)


class MockupServer:
    """
    FastAPI-based mockup server for a fixture configuration.

    Example:
        config = MockupConfig.from_file('config.json')
        server = MockupServer(config, ServerConfig(port=3001))
        server.start()

        # In tests
        client = TestClient(server.app)
    """

    def __init__(
        self,
        config: MockupConfig,
        server_config: Optional[ServerConfig] = None,
        token_service: Optional[TokenService] = None
    ):
        """
        Initialize mockup server.

        Args:
            config: Parsed, immutable fixture configuration
            server_config: Optional ServerConfig for server behavior
            token_service: Optional TokenService (built from the environment if None)
        """
        self.config = config
        self.server_config = server_config or ServerConfig()

        # Level applies to the whole package (mock and auth loggers)
        logging.getLogger("mockup").setLevel(getattr(logging, self.server_config.log_level.upper()))
        self.logger = logging.getLogger("mockup.mock")

        self.tokens = token_service or TokenService(
            secret=get_session_secret_from_env(),
            previous_secrets=get_previous_secrets_from_env(),
            lifetime=self.server_config.token_lifetime
        )
        self.dispatcher = Dispatcher(config, self.server_config, self.tokens)
        # Built once; fixtures never change after startup
        self.document = self.dispatcher.synthesizer.document

        self.app = self._create_app()
        self._server: Optional[uvicorn.Server] = None

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with a single catch-all route."""
        app = FastAPI(
            title="Mockup Server",
            description="Mock backend serving configured fixtures",
            version="1.0.0",
            openapi_url=None,
            docs_url=None,
            redoc_url=None
        )

        @app.api_route("/{path:path}", methods=SUPPORTED_METHODS)
        async def mock_request(request: Request, path: str):
            """Route every request through the dispatcher."""
            return await self.dispatcher.dispatch(request)

        return app

    def start(self, host: Optional[str] = None, port: Optional[int] = None, access_log: bool = True):
        """
        Start the server and block until it is stopped.

        uvicorn installs the SIGINT/SIGTERM handlers and closes the listening
        socket before returning.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host or self.server_config.host
        actual_port = port or self.server_config.port

        print("Mockup Server starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        for line in describe_config(self.config):
            print(line)
        if self.server_config.docs_enabled:
            print(f"   Docs: http://{actual_host}:{actual_port}{self.server_config.docs_path}")
        print()

        self._server = uvicorn.Server(uvicorn.Config(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.server_config.log_level,
            access_log=access_log
        ))
        self._server.run()

    def stop(self):
        """Ask a running server to shut down gracefully."""
        if self._server is not None:
            self.logger.info("Stopping mockup server")
            self._server.should_exit = True

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mockup_server(
    config_file: str,
    host: str = "127.0.0.1",
    port: int = 3001,
    log_level: str = "info",
    prefer_fallback: str = FALLBACK_ECHO,
    docs_enabled: bool = True,
    cookie_secure: bool = False
) -> MockupServer:
    """
    Convenience function to load a configuration file and build a server.

    Args:
        config_file: Path to JSON or YAML configuration
        host: Host to bind to
        port: Port to bind to
        log_level: Logging level (debug, info, warning, error)
        prefer_fallback: Prefer fallback policy (echo, unavailable)
        docs_enabled: Serve /openapi-json and /docs
        cookie_secure: Mark the session cookie Secure

    Returns:
        Configured MockupServer instance

    Raises:
        ConfigInvalid: If the configuration cannot be loaded

    Example:
        server = create_mockup_server('config.json', port=3001, prefer_fallback='unavailable')
        server.start()
    """
    config = MockupConfig.from_file(config_file)
    server_config = ServerConfig(
        host=host,
        port=port,
        log_level=log_level,
        prefer_fallback=prefer_fallback,
        docs_enabled=docs_enabled,
        cookie_secure=cookie_secure
    )
    return MockupServer(config, server_config=server_config)
