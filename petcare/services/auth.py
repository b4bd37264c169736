from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from petcare.models.auth import TokenPayload


def create_access_token(
    subject: str, secret_key: str, algorithm: str, expires_minutes: int = 30
) -> str:
    """Mint a token the way the identity service does. Used by tooling and tests."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = TokenPayload(sub=subject, exp=int(expire.timestamp()))
    return jwt.encode(payload.model_dump(), secret_key, algorithm=algorithm)


def decode_access_token(
    token: str, secret_key: str, algorithm: str
) -> TokenPayload | None:
    try:
        data = jwt.decode(token, secret_key, algorithms=[algorithm])
        return TokenPayload(**data)
    except JWTError:
        return None
