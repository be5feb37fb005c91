from fastapi import APIRouter
import secrets

from feeledger.config import settings
from feeledger.exceptions import UnauthorizedError
from feeledger.logging_config import get_logger
from feeledger.schemas.auth import LoginRequest, LoginResponse
from feeledger.utils.jwt import create_access_token

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(credentials: LoginRequest):
    """
    Admin login against the configured credentials.
    An empty ADMIN_PASSWORD disables login.
    """
    valid = (
        bool(settings.ADMIN_PASSWORD)
        and secrets.compare_digest(credentials.username, settings.ADMIN_USERNAME)
        and secrets.compare_digest(credentials.password, settings.ADMIN_PASSWORD)
    )
    if not valid:
        logger.warning(f"Failed login attempt for '{credentials.username}'")
        raise UnauthorizedError("Invalid credentials")

    logger.info(f"Admin '{credentials.username}' logged in")
    return LoginResponse(message="Login successful", token=create_access_token(credentials.username))
