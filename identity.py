from dataclasses import dataclass
from typing import Optional, Protocol

from jose import JWTError, jwt

from app_logger import get_logger
from config import Settings
from errors import UnauthenticatedError

logger = get_logger("auth")

JWT_ALGORITHMS = ["ES256"]


@dataclass(frozen=True)
class Caller:
    user_id: Optional[int]
    permission_idx: Optional[int]
    username: str = ""


class IdentitySource(Protocol):
    def authenticate(self, authorization: Optional[str]) -> Caller: ...


class VerifiedIdentity:
    """Verifies ES256 bearer tokens issued by the identity service."""

    def __init__(self, public_key: str, audience: str, issuer: str):
        self._public_key = public_key
        self._audience = audience
        self._issuer = issuer

    def authenticate(self, authorization: Optional[str]) -> Caller:
        if not authorization or not authorization.startswith("Bearer "):
            raise UnauthenticatedError()
        token = authorization[len("Bearer "):].strip()

        try:
            claims = jwt.decode(
                token,
                self._public_key,
                algorithms=JWT_ALGORITHMS,
                audience=self._audience,
                issuer=self._issuer,
                options={"require_exp": True, "require_aud": True, "require_iss": True},
            )
        except JWTError as e:
            # signature/expiry/audience/issuer errors land here
            logger.warning("token verification failed: %s", e)
            raise UnauthenticatedError() from e

        try:
            user_id = int(claims["userIdx"])
            permission_idx = int(claims["permission"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("token is missing identity claims: %s", e)
            raise UnauthenticatedError() from e

        return Caller(
            user_id=user_id,
            permission_idx=permission_idx,
            username=str(claims.get("username", "")),
        )


class AlwaysAuthorize:
    """Development identity: anonymous, but carrying the admin permission level."""

    def __init__(self, admin_idx: int):
        self._caller = Caller(user_id=None, permission_idx=admin_idx, username="dev")

    def authenticate(self, authorization: Optional[str]) -> Caller:
        return self._caller


def build_identity_source(settings: Settings) -> IdentitySource:
    if settings.dev_mode:
        logger.warning("DEV_MODE is on: identity verification is bypassed")
        return AlwaysAuthorize(settings.admin_permission_idx)
    if not settings.jwt_public_key:
        raise ValueError("JWT public key is required unless DEV_MODE is set")
    return VerifiedIdentity(
        settings.jwt_public_key,
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
