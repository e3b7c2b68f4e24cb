"""Rate limiting middleware for ReelCritic.

Provides in-memory fixed window rate limiting with per-route policies.
Every request under ``/api`` counts against the general policy; requests
matching a specific policy (login, review posting, search...) also count
against that policy. Clients are keyed by bearer-token hash or IP address.

Counters are kept in a ``limits`` storage. The default ``MemoryStorage``
expires each counter when its window ends, and each instance limits
independently.
"""

from __future__ import annotations

import hashlib
import math
import re
import time
from dataclasses import dataclass, field

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from reelcritic.api.errors import api_error_handler
from reelcritic.errors import RateLimitedError


@dataclass(frozen=True)
class RatePolicy:
    """A request budget for the routes matching ``pattern``."""

    name: str
    limit: int
    window_seconds: int
    message: str
    pattern: str = r"^/api/"
    methods: frozenset[str] | None = None

    def matches(self, method: str, path: str) -> bool:
        if self.methods is not None and method not in self.methods:
            return False
        return re.search(self.pattern, path) is not None

    def item(self) -> RateLimitItem:
        return RateLimitItemPerSecond(self.limit, self.window_seconds)


GENERAL_POLICY = RatePolicy(
    "general", 100, 15 * 60, "Too many requests from this IP, please try again later."
)

DEFAULT_POLICIES: tuple[RatePolicy, ...] = (
    RatePolicy(
        "auth",
        5,
        15 * 60,
        "Too many authentication attempts, please try again later.",
        pattern=r"^/api/v1/users/?(auth)?$",
        methods=frozenset({"POST"}),
    ),
    RatePolicy(
        "review",
        5,
        60 * 60,
        "Too many reviews created, please try again later.",
        pattern=r"^/api/v1/movies/\d+/reviews$",
        methods=frozenset({"POST"}),
    ),
    RatePolicy(
        "comment",
        10,
        10 * 60,
        "Too many comments, please slow down.",
        pattern=r"/comments$",
        methods=frozenset({"POST"}),
    ),
    RatePolicy(
        "search",
        30,
        60,
        "Too many search requests, please slow down.",
        pattern=r"^/api/v1/(movies|tmdb)/search$",
    ),
    RatePolicy(
        "tmdb",
        30,
        10,
        "Too many requests to movie data endpoints, please slow down.",
        pattern=r"^/api/v1/tmdb/",
    ),
    RatePolicy(
        "admin",
        20,
        5 * 60,
        "Too many admin requests, please slow down.",
        pattern=r"^/api/v1/(movies/admin/|dashboard)",
    ),
    RatePolicy(
        "like",
        50,
        60,
        "Too many like actions, please slow down.",
        pattern=r"^/api/v1/(likes/toggle|movies/(reviews|comments)/[^/]+/like)$",
        methods=frozenset({"POST"}),
    ),
)


@dataclass
class RateLimitConfig:
    """Rate limiting configuration."""

    general: RatePolicy = GENERAL_POLICY
    policies: tuple[RatePolicy, ...] = DEFAULT_POLICIES
    # Path prefixes to bypass (health checks)
    bypass_prefixes: list[str] = field(default_factory=lambda: ["/health"])
    # IPs to bypass (internal services)
    bypass_ips: list[str] = field(default_factory=list)


@dataclass
class Decision:
    allowed: bool
    policy: RatePolicy
    remaining: int
    reset_after: int


class PolicyLimiter:
    """Fixed-window counters per policy and client key."""

    def __init__(self, storage: Storage | None = None) -> None:
        self.storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self.storage)

    def hit(self, client_key: str, policy: RatePolicy) -> Decision:
        item = policy.item()
        allowed = self._strategy.hit(item, policy.name, client_key)
        stats = self._strategy.get_window_stats(item, policy.name, client_key)
        reset_after = max(1, math.ceil(stats.reset_time - time.time()))
        return Decision(allowed, policy, stats.remaining, reset_after)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware with IP and token support.

    Features:
    - Route-specific policies on top of a general budget
    - Bypass paths for health checks
    - Standard rate limit headers
    """

    def __init__(
        self,
        app: ASGIApp,
        config: RateLimitConfig | None = None,
        storage: Storage | None = None,
    ) -> None:
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.limiter = PolicyLimiter(storage)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self.config.bypass_prefixes):
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        if client_ip in self.config.bypass_ips:
            return await call_next(request)

        client_key = self._get_rate_limit_key(request, client_ip)
        policies = [p for p in self.config.policies if p.matches(request.method, path)]
        if self.config.general.matches(request.method, path):
            policies.insert(0, self.config.general)

        decisions = []
        for policy in policies:
            decision = self.limiter.hit(client_key, policy)
            if not decision.allowed:
                # Middleware sits outside the app's exception handling
                denied = await api_error_handler(
                    request, RateLimitedError(policy.message, decision.reset_after)
                )
                denied.headers.update(self._headers(decision))
                return denied
            decisions.append(decision)

        response = await call_next(request)

        if decisions:
            # Report the tightest budget
            tightest = min(decisions, key=lambda d: d.remaining)
            for name, value in self._headers(tightest).items():
                response.headers[name] = value
        return response

    @staticmethod
    def _headers(decision: Decision) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(decision.policy.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset": str(decision.reset_after),
        }

    def _get_rate_limit_key(self, request: Request, client_ip: str) -> str:
        """Token hash for authenticated requests, IP address otherwise."""
        token = request.cookies.get("jwt")
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
        if token:
            token_hash = hashlib.sha256(token.encode()).hexdigest()[:16]
            return f"token:{token_hash}"
        return f"ip:{client_ip}"

    def _get_client_ip(self, request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"
