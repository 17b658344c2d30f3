import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from todo_api.crud.users import UserRepository
from todo_api.database import get_db
from todo_api.dependencies import get_current_user, get_hasher, get_token_service
from todo_api.errors import AuthenticationError, ConflictError, ValidationError
from todo_api.schemas.common import MessageOut
from todo_api.schemas.user import LoginOut, RegisterOut, UserCreate, UserLogin, UserSummary
from todo_api.utils.auth import Identity, PasswordHasher, TokenService

router = APIRouter(prefix="/auth", tags=["auth"])

logger = structlog.get_logger()

# one message for both unknown email and wrong password
INVALID_CREDENTIALS = "Invalid credentials"


@router.post("/register", response_model=RegisterOut, status_code=201)
def register(body: UserCreate, db: Session = Depends(get_db), hasher: PasswordHasher = Depends(get_hasher)):
    users = UserRepository(db)
    # fast path only; the unique constraint on insert is what actually decides
    if users.get_by_email(body.email):
        logger.info("auth.register_conflict")
        raise ConflictError("Email already in use")

    try:
        hashed = hasher.hash(body.password)
    except ValueError as e:
        # map hashing/validation errors to a 400 so client gets a clear message
        raise ValidationError(str(e))

    user = users.create(body.first_name, body.last_name, body.email, hashed)
    logger.info("auth.registered", user_id=str(user.id))
    return {"message": "User registered successfully", "id": user.id}


@router.post("/login", response_model=LoginOut)
def login(
    body: UserLogin,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenService = Depends(get_token_service),
):
    users = UserRepository(db)
    user = users.get_by_email(body.email)
    if user is None:
        logger.info("auth.login_failed", reason="unknown_email")
        raise AuthenticationError(INVALID_CREDENTIALS)

    valid, new_hash = hasher.verify_and_update(body.password, user.password)
    if not valid:
        logger.info("auth.login_failed", reason="wrong_password", user_id=str(user.id))
        raise AuthenticationError(INVALID_CREDENTIALS)

    # Auto-upgrade legacy or under-cost digests on successful login
    if new_hash:
        users.update_password(user.id, new_hash)
        logger.info("auth.password_rehashed", user_id=str(user.id))

    token = tokens.issue(user.id, user.email)
    logger.info("auth.login", user_id=str(user.id))
    return {
        "message": "Login successful",
        "token": token,
        "token_type": "bearer",
        "user": UserSummary.model_validate(user),
    }


@router.post("/logout", response_model=MessageOut)
def logout(identity: Identity = Depends(get_current_user)):
    """Tokens are not revocable; the client is expected to discard its copy.
    The token keeps working until it expires."""
    logger.info("auth.logout", user_id=str(identity.id))
    return {"message": "Logged out successfully"}
