"""
Auth router — exposes the /auth/token login endpoint.

Uses OAuth2 "password" grant (RFC 6749 §4.3) so the client sends
  Content-Type: application/x-www-form-urlencoded
  username=<user>&password=<pass>

and receives a bearer token in return.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from lightsail_provider.config import settings
from lightsail_provider.services import auth

router = APIRouter(prefix="/auth", tags=["Authentication"])


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Obtain a JWT access token",
)
def login(form_data: OAuth2PasswordRequestForm = Depends()) -> TokenResponse:
    """Validate credentials and issue a JWT."""
    if not auth.authenticate_user(form_data.username, form_data.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = auth.create_access_token(subject=form_data.username)
    return TokenResponse(
        access_token=token,
        expires_in=settings.jwt_expire_minutes * 60,
    )
