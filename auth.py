"""
Authentication utilities for JWT-based auth, plus the /api/auth endpoints:
sign up, sign in, sign out and the OTP-based password reset.
"""
import logging
import os
import secrets
from datetime import timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import APIRouter, HTTPException, Header, Depends
from sqlalchemy.orm import Session
from database import get_db
from models import User, CheckoutState, PasswordResetOtp, utcnow
from schemas import (
    AuthResponse, ForgotPasswordRequest, MessageResponse, ResetPasswordRequest,
    SignInRequest, SignUpRequest, UserOut, VerifyOtpRequest, VerifyOtpResponse,
)

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT settings
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = 7
RESET_TOKEN_EXPIRE_MINUTES = 15

# OTP settings
OTP_LENGTH = 6
OTP_EXPIRE_MINUTES = 10
OTP_MAX_ATTEMPTS = 5

router = APIRouter(prefix="/api/auth", tags=["auth"])


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing data to encode (e.g., {"sub": email})
        expires_delta: Optional expiration time delta. Defaults to 7 days.

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Extract token from "Bearer <token>"
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication header format",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return parts[1]


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.

    Reads Authorization: Bearer <token> header and validates the JWT.
    """
    token = _bearer_token(authorization)

    try:
        # Decode and verify JWT
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        email: str = payload.get("sub")
        if email is None or payload.get("purpose", "access") != "access":
            raise HTTPException(status_code=401, detail="Invalid token payload")
    except JWTError:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Get user from database
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")

    return user


def generate_otp() -> str:
    """Random numeric one-time code."""
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))


def _issue_token(user: User) -> AuthResponse:
    token = create_access_token({"sub": user.email})
    return AuthResponse(user=UserOut.model_validate(user), token=token)


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(payload: SignUpRequest, db: Session = Depends(get_db)):
    """Create an account and sign it in."""
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="An account with this email already exists")

    user = User(
        email=email,
        first_name=payload.first_name.strip(),
        last_name=(payload.last_name or "").strip() or None,
        phone=payload.phone,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("New account created: user_id=%s", user.id)
    return _issue_token(user)


@router.post("/signin", response_model=AuthResponse)
def signin(payload: SignInRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    logger.info("User signed in: user_id=%s", user.id)
    return _issue_token(user)


@router.post("/signout", response_model=MessageResponse)
def signout(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Tokens are stateless, so signing out is the client discarding its token.
    Server side we drop the payment details held in the checkout session.
    """
    state = db.query(CheckoutState).filter(CheckoutState.user_id == user.id).first()
    if state is not None:
        state.payment_method = None
        state.payment_details = None
        state.payment_validated = False
        db.commit()
    logger.info("User signed out: user_id=%s", user.id)
    return MessageResponse(message="Signed out")


@router.get("/user", response_model=UserOut)
def current_user(user: User = Depends(get_current_user)):
    return user


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """
    Issue a one-time code for a password reset.

    The response is the same whether or not the email has an account.
    """
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if user is not None:
        # Older codes stop working once a new one is issued
        db.query(PasswordResetOtp).filter(
            PasswordResetOtp.user_id == user.id,
            PasswordResetOtp.consumed.is_(False),
        ).update({"consumed": True}, synchronize_session=False)

        code = generate_otp()
        db.add(PasswordResetOtp(
            user_id=user.id,
            code_hash=hash_password(code),
            expires_at=utcnow() + timedelta(minutes=OTP_EXPIRE_MINUTES),
        ))
        db.commit()
        # Email delivery is simulated
        logger.info("Password reset OTP issued for user_id=%s", user.id)
        logger.debug("OTP for %s: %s", user.email, code)

    return MessageResponse(message="If an account exists for this email, an OTP has been sent.")


@router.post("/verify-otp", response_model=VerifyOtpResponse)
def verify_otp(payload: VerifyOtpRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")

    otp = (
        db.query(PasswordResetOtp)
        .filter(PasswordResetOtp.user_id == user.id, PasswordResetOtp.consumed.is_(False))
        .order_by(PasswordResetOtp.id.desc())
        .first()
    )
    if otp is None or otp.expires_at < utcnow():
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")
    if otp.attempts >= OTP_MAX_ATTEMPTS:
        raise HTTPException(status_code=429, detail="Too many attempts. Please request a new OTP.")

    if not verify_password(payload.otp, otp.code_hash):
        otp.attempts += 1
        db.commit()
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")

    otp.consumed = True
    db.commit()
    reset_token = create_access_token(
        {"sub": user.email, "purpose": "password_reset", "jti": str(otp.id)},
        expires_delta=timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES),
    )
    return VerifyOtpResponse(reset_token=reset_token)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    try:
        claims = jwt.decode(payload.reset_token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    if claims.get("purpose") != "password_reset":
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    user = db.query(User).filter(User.email == claims.get("sub")).first()
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    # One reset per verified OTP
    otp_id = claims.get("jti")
    otp = None
    if otp_id and str(otp_id).isdigit():
        otp = db.query(PasswordResetOtp).filter(
            PasswordResetOtp.id == int(otp_id),
            PasswordResetOtp.user_id == user.id,
        ).first()
    if otp is None or not otp.consumed or otp.reset_used:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    otp.reset_used = True
    user.password_hash = hash_password(payload.new_password)
    db.commit()
    logger.info("Password reset for user_id=%s", user.id)
    return MessageResponse(message="Password has been reset. Please sign in.")
