import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from translation_api.auth import authenticate_user, create_access_token
from translation_api.config import settings
from translation_api.database import get_db
from translation_api.exceptions import AuthenticationError
from translation_api.middleware.rate_limit import limiter
from translation_api.schemas import Envelope, LoginRequest, Token, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Envelope[Token])
@limiter.limit(settings.rate_limit_default)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange email and password for a bearer token."""
    user = await authenticate_user(db, credentials.email, credentials.password)
    if user is None:
        raise AuthenticationError("Invalid credentials")

    token = create_access_token(data={"sub": user.email})
    logger.info(f"Access token created for user: {user.email}")
    return Envelope[Token](data=Token(token=token, user=UserOut.model_validate(user)))
