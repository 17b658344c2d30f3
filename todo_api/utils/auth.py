import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, Union

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """bcrypt hashing through a passlib CryptContext.

    The scheme and cost are embedded in every digest, so verification picks
    the right algorithm on its own. ``pbkdf2_sha256`` is accepted for old
    digests only; ``deprecated="auto"`` flags them (and bcrypt digests with
    fewer rounds than configured) for re-hashing.
    """

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt", "pbkdf2_sha256"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Hash a password after validating bcrypt's 72-byte limit.

        Raises ValueError if the UTF-8 encoding of the password exceeds 72 bytes.
        """
        if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError("password too long: must be at most 72 bytes when UTF-8 encoded")
        return self._context.hash(password)

    def verify(self, password: str, digest: str) -> bool:
        """Verify a plaintext password against a digest.

        Malformed or unrecognised digests and over-long passwords return
        False so callers can answer with an authentication failure.
        """
        try:
            return self._context.verify(password, digest)
        except (ValueError, TypeError):
            return False

    def needs_update(self, digest: str) -> bool:
        try:
            return self._context.needs_update(digest)
        except (ValueError, TypeError):
            return False

    def verify_and_update(self, password: str, digest: str) -> Tuple[bool, Optional[str]]:
        """Return ``(valid, new_digest)``; ``new_digest`` is set only when the
        password matched and the stored digest should be replaced."""
        try:
            return self._context.verify_and_update(password, digest)
        except (ValueError, TypeError):
            return False, None


@dataclass(frozen=True)
class Identity:
    id: uuid.UUID
    email: str


@dataclass(frozen=True)
class InvalidToken:
    reason: str


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens.

    Tokens are stateless: there is no revocation list, a token stays valid
    until ``exp`` even after the client logs out.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: float = 24 * 60):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, user_id: uuid.UUID, email: str) -> str:
        now = datetime.now(timezone.utc)
        expire = now + timedelta(minutes=self.expire_minutes)
        claims = {
            "sub": str(user_id),
            "email": email,
            # JWT spec uses Unix timestamps
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> Union[Identity, InvalidToken]:
        """Resolve a token to an Identity. Never raises: any malformed,
        mis-signed or expired token yields InvalidToken."""
        try:
            # jwt.decode validates exp automatically
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            return InvalidToken("Token has expired")
        except JWTError:
            return InvalidToken("Invalid token")

        subject = payload.get("sub")
        email = payload.get("email")
        if not subject or not email:
            return InvalidToken("Invalid token: missing user")
        try:
            user_id = uuid.UUID(str(subject))
        except ValueError:
            return InvalidToken("Invalid token: malformed subject")
        return Identity(id=user_id, email=email)
