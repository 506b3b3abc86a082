"""
Books API — Request Principal
==============================

What:  FastAPI dependency resolving the calling principal from the
       `Authorization: Bearer <token>` header.
How:   Tokens are looked up in the `api_tokens` table of the settings the
       application was created with. No header means the anonymous
       principal; a token that is not in the table is rejected.
Who:   Injected into every books route handler.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from books_api.exceptions import AuthorizationError
from books_api.services.authorization import ANONYMOUS, Principal

logger = logging.getLogger(__name__)

# auto_error=False: a missing header is anonymous access, not a 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    if credentials is None:
        return ANONYMOUS

    grant = request.app.state.settings.api_tokens.get(credentials.credentials)
    if grant is None:
        logger.warning("Rejected request with unknown bearer token")
        raise AuthorizationError(
            message="The provided API token is invalid.",
            code="rest_invalid_token",
        )
    return Principal(user_id=grant.user_id, roles=frozenset(grant.roles))
