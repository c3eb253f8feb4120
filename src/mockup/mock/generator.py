"""
Mockup Response Negotiator

Selects the status code and body returned for a matched fixture.

Features:
- Configured response by default
- Scenario selection with the `Prefer` header (`status=404; type=empty`)
- Configurable fallback when the requested scenario has no example
- Simulated latency within the configured response time bounds
"""

import asyncio
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .fixtures import Fixture, ResponseTime

logger = logging.getLogger("mockup.mock")

FALLBACK_ECHO = 'echo'
FALLBACK_UNAVAILABLE = 'unavailable'
FALLBACK_POLICIES = (FALLBACK_ECHO, FALLBACK_UNAVAILABLE)

_PARAM_PATTERN = re.compile(r'^\s*([A-Za-z_-]+)\s*=\s*"?([^";,]*)"?\s*$')


@dataclass(frozen=True)
class Preference:
    """Client-requested response scenario."""

    status: int
    type: Optional[str] = None


@dataclass
class NegotiatedResponse:
    status: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.body is None


def parse_preference(header: Optional[str]) -> Optional[Preference]:
    """
    Parse a preference hint such as `status=404; type=not-found`.

    Parameters may be separated by `;` or `,`. `code` is accepted as an
    alias of `status`. Unknown parameters are ignored.

    Args:
        header: Raw Prefer header value

    Returns:
        Preference, or None when the header is absent or has no valid status
    """
    if not header:
        return None

    params: Dict[str, str] = {}
    for part in re.split(r'[;,]', header):
        if not part.strip():
            continue
        match = _PARAM_PATTERN.match(part)
        if not match:
            continue
        params.setdefault(match.group(1).lower(), match.group(2).strip())

    raw_status = params.get('status', params.get('code'))
    if raw_status is None or not raw_status.isdigit():
        return None
    status = int(raw_status)
    if not 100 <= status <= 599:
        return None

    return Preference(status=status, type=params.get('type') or None)


class ResponseNegotiator:
    """
    Picks the response for a fixture and applies simulated latency.

    Example:
        negotiator = ResponseNegotiator(config.response_time)
        response = await negotiator.negotiate(fixture, parse_preference('status=404'))
    """

    def __init__(
        self,
        response_time: ResponseTime,
        fallback: str = FALLBACK_ECHO,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize negotiator.

        Args:
            response_time: Inclusive latency bounds in milliseconds
            fallback: What to return when the preferred status has no example:
                'echo' returns the requested status with an empty body,
                'unavailable' returns 503 with an empty body
            rng: Random source for latency, replaceable in tests
        """
        if fallback not in FALLBACK_POLICIES:
            raise ValueError(f"Unknown preference fallback {fallback!r}, expected one of {FALLBACK_POLICIES}")
        self.response_time = response_time
        self.fallback = fallback
        self.rng = rng or random.Random()

    def select(self, fixture: Fixture, preference: Optional[Preference] = None) -> NegotiatedResponse:
        """Choose status and body without any delay."""
        headers = dict(fixture.response.headers)

        if preference is None:
            return NegotiatedResponse(fixture.response.status, fixture.response.body, headers)

        candidates = [example for example in fixture.all_examples() if example.status == preference.status]
        if candidates:
            chosen = candidates[0]
            if preference.type:
                typed = [example for example in candidates if example.type == preference.type]
                if typed:
                    chosen = typed[0]
            return NegotiatedResponse(chosen.status, chosen.body, headers)

        if self.fallback == FALLBACK_UNAVAILABLE:
            logger.debug(f"No example for status {preference.status} on {fixture.path}, answering 503")
            return NegotiatedResponse(503, None, headers)

        logger.debug(f"No example for status {preference.status} on {fixture.path}, echoing status")
        return NegotiatedResponse(preference.status, None, headers)

    def pick_delay_ms(self) -> int:
        return self.rng.randint(self.response_time.min, self.response_time.max)

    async def apply_delay(self) -> int:
        """Suspend the current request only, never the event loop."""
        delay_ms = self.pick_delay_ms()
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)
        return delay_ms

    async def negotiate(self, fixture: Fixture, preference: Optional[Preference] = None) -> NegotiatedResponse:
        """
        Select the response for a fixture, then simulate latency.

        Args:
            fixture: Matched fixture
            preference: Parsed Prefer header, if any

        Returns:
            NegotiatedResponse with status, body and extra headers
        """
        response = self.select(fixture, preference)
        await self.apply_delay()
        return response
