from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from admissions.database.config.db import get_db
from admissions.database.models.auth import User
from admissions.schema.auth import AdminResponse, LoginRequest, Token
from admissions.utils.auth import create_access_token, get_current_admin, verify_password

auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@auth_router.post("/login", response_model=Token)
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Admin login. Returns a bearer token for the /admin endpoints.
    """
    user = db.query(User).filter(User.email == body.email.lower()).first()

    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    user.last_login = datetime.now(timezone.utc)
    db.commit()

    token = create_access_token({"sub": str(user.id), "email": user.email})
    return Token(access_token=token)


@auth_router.get("/me", response_model=AdminResponse)
def get_me(
    current_admin: User = Depends(get_current_admin),
):
    return current_admin
