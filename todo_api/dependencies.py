"""FastAPI dependencies shared by the routers.

The services are built once by ``create_app`` and kept on ``app.state``;
handlers reach them through these getters instead of module globals.
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from todo_api.errors import AuthenticationError
from todo_api.utils.auth import Identity, InvalidToken, PasswordHasher, TokenService
from todo_api.utils.images import ImageStore

logger = structlog.get_logger()


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


def _extract_bearer(authorization: str) -> Optional[str]:
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Auth gate: resolve the bearer token to an Identity or reject with 401.

    The identity is also attached to ``request.state.identity``.
    """
    if not authorization:
        raise AuthenticationError("Authentication required")

    token = _extract_bearer(authorization)
    if token is None:
        raise AuthenticationError("Invalid authorization header")

    result = tokens.verify(token)
    if isinstance(result, InvalidToken):
        logger.info("auth.token_rejected", reason=result.reason, path=request.url.path)
        raise AuthenticationError(result.reason)

    request.state.identity = result
    return result
