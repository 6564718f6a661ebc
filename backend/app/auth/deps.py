"""FastAPI dependencies for the optional identity pre-fill.

Dependencies:
  get_optional_identity  → {name, email} from a Bearer identity token, or None

A missing, expired or malformed token is never an error here; the wizard
just starts without pre-filled contact fields.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth.jwt import decode_token
from app.schemas.quote_draft import IdentityOut

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> IdentityOut | None:
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    if payload.get("type") != "identity":
        return None
    name = payload.get("name")
    email = payload.get("email")
    if not name and not email:
        return None
    return IdentityOut(name=name, email=email)
