"""
Core security utilities for authentication and password handling.
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import jwt, JWTError
from passlib.context import CryptContext
import hashlib
import hmac
import secrets
import logging

from ..config import settings
from .clock import utcnow, as_utc

# Set up logging
logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Checked against when the email is unknown so both paths cost one bcrypt round
_DUMMY_PASSWORD_HASH = pwd_context.hash("pacigest-dummy-password")

def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against a hash.

    When no hash is available the dummy hash is still verified so the call
    takes the same time as a real mismatch.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to compare against

    Returns:
        bool: True if password matches hash
    """
    if not hashed_password:
        pwd_context.verify(plain_password, _DUMMY_PASSWORD_HASH)
        return False
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token (``sub`` and ``role`` at least)
        expires_delta: Token expiration time

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)

def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Dict containing token payload if valid, None if invalid or expired
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.debug(f"Token rejected: {str(e)}")
        return None

def generate_verification_code(length: int = 6) -> str:
    """
    Generate a numeric verification code.

    Args:
        length: Number of digits (default: 6)

    Returns:
        str: Zero-padded random digits
    """
    return "".join(str(secrets.randbelow(10)) for _ in range(length))

def generate_secure_reset_token() -> str:
    """
    Generate a secure token for password reset.

    Returns:
        str: Secure random token
    """
    return secrets.token_urlsafe(32)

def generate_temporary_password() -> str:
    """Random password handed to newly invited staff accounts."""
    return secrets.token_urlsafe(12)

def hash_token(token: str) -> str:
    """
    Hash a token for secure storage.

    Args:
        token: Token to hash

    Returns:
        str: Hashed token
    """
    return hashlib.sha256(token.encode()).hexdigest()

def verify_token_hash(token: str, hashed_token: Optional[str]) -> bool:
    """
    Verify a token against a hash in constant time.

    Args:
        token: Plain text token
        hashed_token: Hashed token to compare against

    Returns:
        bool: True if token matches hash
    """
    if not hashed_token:
        return False
    return hmac.compare_digest(hash_token(token), hashed_token)

def is_token_expired(expiry_time: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Check if a token has expired. A missing expiry counts as expired.

    Args:
        expiry_time: Token expiration time
        now: Reference time (defaults to the current time)

    Returns:
        bool: True if token has expired
    """
    if expiry_time is None:
        return True
    return (now or utcnow()) > as_utc(expiry_time)

def get_token_expiry_time(minutes: int = 30) -> datetime:
    """
    Get token expiration time.

    Args:
        minutes: Minutes until expiration

    Returns:
        datetime: Expiration time
    """
    return utcnow() + timedelta(minutes=minutes)
