"""
Authentication endpoints for API v1.

Staff exchange email and password for a bearer token.  Tokens are
stateless JWTs, so logout only tells the client to discard its token.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from event_checkin_api.app.core.security import create_access_token, get_current_user
from event_checkin_api.app.schemas.staff import LoginRequest, TokenResponse
from event_checkin_api.app.services.staff_service import StaffService


router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest) -> TokenResponse:
    """Authenticate a staff member and return an access token."""
    staff = await StaffService.authenticate(credentials.email, credentials.password)
    if not staff:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return TokenResponse(access_token=create_access_token({"sub": staff.email}))


@router.post("/logout")
async def logout(current_user: dict = Depends(get_current_user)) -> dict:
    return {"success": True}


@router.get("/me")
async def read_current_user(current_user: dict = Depends(get_current_user)) -> dict:
    """Return the identity behind the presented token.

    Static tokens report ``user_id`` as ``null``.
    """
    return {
        "sub": current_user.get("sub"),
        "user_id": current_user.get("user_id"),
        "role_id": current_user.get("role_id"),
    }
