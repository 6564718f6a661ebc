"""Identity token creation and decoding.

The quote wizard does not authenticate anyone. When the storefront already
knows who the visitor is, it may pass a short-lived identity token whose
claims are used only to pre-fill empty name/email fields.

Token claims:
  - sub:    user ID in the storefront
  - name:   display name (optional)
  - email:  email address (optional)
  - type:   "identity"
  - exp:    expiry timestamp
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import settings

ALGORITHM = settings.jwt_algorithm


def create_identity_token(
    user_id: str,
    name: str | None = None,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    payload = {"sub": user_id, "type": "identity", "exp": expire}
    if name:
        payload["name"] = name
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
