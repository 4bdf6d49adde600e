import json

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from . import config
from .domain import ROLE_ADMIN, ROLE_RESIDENT, Caller
from .errors import Unauthorized

bearer_scheme = HTTPBearer(auto_error=False)


def _parse_roles(raw) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return []
        try:
            raw = json.loads(raw)
        except ValueError:
            raw = raw.split(",")
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [str(r).strip().lower() for r in raw if str(r).strip()]


def _role(roles: list[str]) -> str:
    return ROLE_ADMIN if ROLE_ADMIN in roles else ROLE_RESIDENT


def caller_from_token(token: str, secret: str, algorithm: str) -> Caller:
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        raise Unauthorized("Invalid or expired token")

    sub = payload.get("sub")
    if not sub:
        raise Unauthorized("Token has no subject")

    return Caller(
        user_id=str(sub),
        role=_role(_parse_roles(payload.get("roles"))),
        email=str(payload.get("email") or ""),
        name=str(payload.get("name") or ""),
    )


def get_current_caller(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Caller:
    """
    Resolve the calling user.

    With JWT_SECRET configured a bearer token is required and identity
    headers are ignored. Without it the service sits behind the gateway and
    trusts its X-User-Sub / X-User-Roles headers.
    """
    if config.JWT_SECRET:
        if not creds or creds.scheme.lower() != "bearer":
            raise Unauthorized("Missing token")
        caller = caller_from_token(creds.credentials, config.JWT_SECRET, config.JWT_ALGORITHM)
    else:
        sub = (request.headers.get("X-User-Sub") or "").strip()
        if not sub:
            raise Unauthorized("Authentication required")
        caller = Caller(
            user_id=sub,
            role=_role(_parse_roles(request.headers.get("X-User-Roles"))),
            email=(request.headers.get("X-User-Email") or "").strip(),
            name=(request.headers.get("X-User-Name") or "").strip(),
        )

    request.state.user_sub = caller.user_id
    request.state.user_roles = [caller.role]
    return caller
