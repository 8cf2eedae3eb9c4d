from typing import Optional

from fastapi import Depends, Header, Request

from ..core.exceptions import AuthenticationError
from ..core.factories import ServiceContext


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    authorization: Optional[str] = Header(None),
    context: ServiceContext = Depends(get_context),
) -> str:
    """Caller id for the bearer token, or 401."""
    user_id = context.identity.resolve(parse_bearer(authorization))
    if not user_id:
        raise AuthenticationError()
    return user_id
