"""Issues and verifies user session tokens and response-scoped tokens."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import TypeAdapter, ValidationError

from howhappy.config import TokenConfig
from howhappy.domain.models import (
    RESPONSE_TOKEN_TYPE,
    USER_TOKEN_TYPE,
    ResponseTokenPayload,
    TokenPayload,
    UserTokenPayload,
)
from howhappy.exceptions import InvalidTokenError

logger = logging.getLogger(__name__)

_payload_adapter: TypeAdapter = TypeAdapter(TokenPayload)


class TokenService:
    """
    Stateless signer for the two token kinds.

    Both kinds share one secret; the ``token_type`` claim keeps them apart.
    ``verify`` checks signature and expiry only. Callers enforce the kind
    with ``is_user_token`` / ``is_response_token``.
    """

    def __init__(self, config: TokenConfig):
        self._secret = config.secret
        self._algorithm = config.algorithm
        self._user_ttl = timedelta(minutes=config.user_token_ttl_minutes)
        self._response_ttl = timedelta(minutes=config.response_token_ttl_minutes)

    def issue_user_token(self, user_id: str) -> str:
        return self._sign({"token_type": USER_TOKEN_TYPE, "sub": user_id}, self._user_ttl)

    def issue_response_token(self, survey_id: str, response_id: str) -> str:
        return self._sign(
            {
                "token_type": RESPONSE_TOKEN_TYPE,
                "survey_id": survey_id,
                "response_id": response_id,
            },
            self._response_ttl,
        )

    def verify(self, token: str) -> UserTokenPayload | ResponseTokenPayload:
        """
        Decodes a token and returns its typed payload.

        Raises:
            InvalidTokenError: If the token is malformed, expired, mis-signed
                or carries an unknown ``token_type``.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
            return _payload_adapter.validate_python(claims)
        except (JWTError, ValidationError) as e:
            logger.info("Token rejected", extra={"reason": type(e).__name__})
            raise InvalidTokenError() from e

    @staticmethod
    def is_user_token(payload: Any) -> bool:
        return isinstance(payload, UserTokenPayload)

    @staticmethod
    def is_response_token(payload: Any) -> bool:
        return isinstance(payload, ResponseTokenPayload)

    def _sign(self, claims: dict[str, Any], ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)
