"""FastAPI dependency injection configuration."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from howhappy.container import Container
from howhappy.domain.models import ResponseTokenPayload, UserTokenPayload
from howhappy.domain.response_pipeline import ResponsePipelineService
from howhappy.domain.token_service import TokenService
from howhappy.exceptions import UnauthorizedError

_bearer = HTTPBearer(auto_error=False)

BearerDep = Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)]


def get_container(request: Request) -> Container:
    """Returns the container the application was started with."""
    return request.app.state.container


ContainerDep = Annotated[Container, Depends(get_container)]


def get_pipeline(container: ContainerDep) -> ResponsePipelineService:
    return container.pipeline


def get_token_service(container: ContainerDep) -> TokenService:
    return container.tokens


PipelineDep = Annotated[ResponsePipelineService, Depends(get_pipeline)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]


def _verify(credentials: HTTPAuthorizationCredentials | None, tokens: TokenService):
    if credentials is None:
        raise UnauthorizedError("Missing bearer token")
    return tokens.verify(credentials.credentials)


def optional_user(credentials: BearerDep, tokens: TokenServiceDep) -> UserTokenPayload | None:
    """
    Returns the signed-in user, or None for an anonymous caller.

    A presented token must still be a valid user token.
    """
    if credentials is None:
        return None
    payload = tokens.verify(credentials.credentials)
    if not tokens.is_user_token(payload):
        raise UnauthorizedError("User token required")
    return payload


def require_user(credentials: BearerDep, tokens: TokenServiceDep) -> UserTokenPayload:
    payload = _verify(credentials, tokens)
    if not tokens.is_user_token(payload):
        raise UnauthorizedError("User token required")
    return payload


def require_response_token(credentials: BearerDep, tokens: TokenServiceDep) -> ResponseTokenPayload:
    payload = _verify(credentials, tokens)
    if not tokens.is_response_token(payload):
        raise UnauthorizedError("Response token required")
    return payload


OptionalUserDep = Annotated[UserTokenPayload | None, Depends(optional_user)]
UserDep = Annotated[UserTokenPayload, Depends(require_user)]
ResponseTokenDep = Annotated[ResponseTokenPayload, Depends(require_response_token)]
