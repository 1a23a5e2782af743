"""Redis-backed rate limiter for the POS API."""
import logging
import time
from typing import Optional, Tuple
import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from auth import operator_for
from monitoring import rate_limit_exceeded_counter, suspicious_activity_counter

logger = logging.getLogger(__name__)


class RedisRateLimiter(BaseHTTPMiddleware):
    """
    Rate limiter using Redis sorted sets as sliding windows.

    State lives in Redis so every API worker behind the load balancer shares
    the same counters, and keys expire on their own.

    Two tiers:
    - Per IP: higher limit, several tills may sit behind one store router
    - Per operator: lower limit, stops a single till looping
    """

    def __init__(
        self,
        app,
        redis_client: redis.Redis,
        requests_per_minute_ip: int = 2000,
        requests_per_minute_user: int = 600,
        window_seconds: int = 60
    ):
        """
        Initialize Redis-backed rate limiter.

        Args:
            app: FastAPI application
            redis_client: Redis connection
            requests_per_minute_ip: Max requests per IP per minute
            requests_per_minute_user: Max requests per operator per minute
            window_seconds: Sliding window size in seconds
        """
        super().__init__(app)
        self.redis = redis_client
        self.requests_per_minute_ip = requests_per_minute_ip
        self.requests_per_minute_user = requests_per_minute_user
        self.window_seconds = window_seconds

    def _check_rate_limit(
        self,
        key: str,
        limit: int,
        window: int
    ) -> Tuple[bool, int]:
        """
        Check rate limit using a Redis sorted set.

        Algorithm:
        1. Remove timestamps older than window
        2. Count requests in window
        3. Add current request
        4. Set TTL

        Args:
            key: Redis key for this limit (e.g., "rate:ip:192.168.1.1")
            limit: Maximum requests allowed
            window: Time window in seconds

        Returns:
            Tuple of (is_allowed, current_count)
        """
        try:
            current_time = time.time()
            window_start = current_time - window

            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            pipe.zadd(key, {str(current_time): current_time})
            pipe.expire(key, window + 1)
            results = pipe.execute()

            # Count BEFORE adding current request
            count = results[1]

            return count < limit, count + 1

        except redis.RedisError as e:
            logger.error(f"Redis rate limit error: {e}")
            # Fail open: allow request if Redis is unavailable
            return True, 0

    def _reject(self, limit_type: str, limit: int) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={
                "detail": f"Rate limit exceeded for {limit_type}. Maximum {limit} requests per minute."
            },
            headers={"Retry-After": str(self.window_seconds)}
        )

    async def dispatch(self, request: Request, call_next):
        """
        Process request with dual-tier rate limiting.

        Args:
            request: Incoming request
            call_next: Next middleware in chain

        Returns:
            Response or 429 if rate limited
        """
        client_ip = request.client.host if request.client else "unknown"
        if "x-forwarded-for" in request.headers:
            client_ip = request.headers["x-forwarded-for"].split(",")[0].strip()

        # Unknown tokens only count against the IP window
        operator_id = operator_for(request.headers.get("authorization"))

        # --- IP-based rate limiting ---
        ip_allowed, ip_count = self._check_rate_limit(
            f"rate:ip:{client_ip}",
            self.requests_per_minute_ip,
            self.window_seconds
        )
        if not ip_allowed:
            rate_limit_exceeded_counter.add(1, {
                "limit_type": "ip",
                "client_ip": client_ip
            })
            logger.warning(
                f"Rate limit exceeded for IP {client_ip}: "
                f"{ip_count}/{self.requests_per_minute_ip} requests"
            )
            return self._reject("IP", self.requests_per_minute_ip)

        # --- Operator-based rate limiting ---
        if operator_id:
            user_allowed, user_count = self._check_rate_limit(
                f"rate:user:{operator_id}",
                self.requests_per_minute_user,
                self.window_seconds
            )
            if not user_allowed:
                rate_limit_exceeded_counter.add(1, {
                    "limit_type": "user",
                    "operator_id": operator_id
                })
                logger.warning(
                    f"Rate limit exceeded for operator {operator_id}: "
                    f"{user_count}/{self.requests_per_minute_user} requests"
                )
                return self._reject("user", self.requests_per_minute_user)

        response = await call_next(request)

        self._detect_suspicious_activity(response.status_code, client_ip, operator_id)

        return response

    def _record_and_count(self, key: str, window: int) -> int:
        current_time = time.time()
        self.redis.zadd(key, {str(current_time): current_time})
        self.redis.expire(key, window + 1)
        return self.redis.zcount(key, current_time - window, current_time)

    def _detect_suspicious_activity(
        self,
        status_code: int,
        client_ip: str,
        operator_id: Optional[str]
    ) -> None:
        """
        Detect suspicious activity patterns using Redis.

        Patterns:
        - Credential stuffing: 5+ failed auths in 5 minutes
        - Endpoint scanning: 10+ 404s in 5 minutes
        - Abuse: 20+ 4xx errors in 5 minutes
        """
        window = 300
        patterns = []
        if status_code == 401:
            patterns.append(("401", "credential_stuffing", 5))
        if status_code == 404:
            patterns.append(("404", "endpoint_scanning", 10))
        if 400 <= status_code < 500:
            patterns.append(("4xx", "abuse", 20))

        try:
            for suffix, activity, threshold in patterns:
                count = self._record_and_count(f"suspicious:{suffix}:{client_ip}", window)
                if count >= threshold:
                    suspicious_activity_counter.add(1, {
                        "type": activity,
                        "client_ip": client_ip
                    })
                    logger.warning(
                        f"Suspicious activity: {activity} from {client_ip} "
                        f"({count} {suffix} responses in 5 min)",
                        extra={"operator_id": operator_id}
                    )
        except redis.RedisError as e:
            logger.error(f"Error detecting suspicious activity: {e}")
