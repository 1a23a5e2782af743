"""Till operator authentication.

Every ``/api`` request carries ``Authorization: Bearer <token>``. Tokens map
to named operators (see ``config.OPERATOR_TOKENS``); the resolved operator is
tagged on the request span and kept on ``request.state`` for later logging.
"""
import logging
from typing import NoReturn, Optional
from fastapi import Header, HTTPException, Request
from opentelemetry import trace

from config import OPERATOR_TOKENS
from monitoring import auth_failures_counter, auth_attempts_counter

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from a well-formed bearer header, else None."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def operator_for(authorization: Optional[str]) -> Optional[str]:
    """Operator name behind an Authorization header, or None if unknown."""
    token = bearer_token(authorization)
    if token is None:
        return None
    return OPERATOR_TOKENS.get(token)


def _deny(reason: str, detail: str) -> NoReturn:
    auth_failures_counter.add(1, {"reason": reason})
    logger.warning(f"Authentication failed: {detail}", extra={"reason": reason})
    raise HTTPException(status_code=401, detail=detail)


def require_operator(request: Request, authorization: Optional[str] = Header(None)) -> str:
    """
    Resolve the till operator making the request.

    Returns:
        Operator name

    Raises:
        HTTPException: 401 if the header is missing, malformed or unknown
    """
    auth_attempts_counter.add(1, {"type": "bearer_token"})

    if authorization is None:
        _deny("missing_header", "Missing authorization header")
    if bearer_token(authorization) is None:
        _deny("invalid_format", "Invalid authorization header format")

    operator = operator_for(authorization)
    if operator is None:
        _deny("invalid_token", "Invalid token")

    trace.get_current_span().set_attribute("pos.operator", operator)
    request.state.operator = operator
    logger.debug("Operator authenticated", extra={"operator": operator})
    return operator
