"""Authentication module using email/password credentials and opaque tokens.

This module provides:
1. Registration and login with bcrypt password hashes
2. One opaque bearer token per user, stored on the user row
3. FastAPI dependencies for protecting routes and gating them by role
"""

import logging
import secrets
import uuid
from typing import Optional, Dict, Any, Union
from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from asyncpg.exceptions import UniqueViolationError

from database import get_pool
from errors import AuthenticationError, ConflictError, NotFoundError, ValidationError

# Configure logging
logger = logging.getLogger(__name__)

# Constants
ROLES = ('ARTIST', 'BUYER', 'ADMIN')
SELF_REGISTER_ROLES = ('ARTIST', 'BUYER')
MIN_PASSWORD_LENGTH = 6
TOKEN_BYTES = 32

# Public user columns, never includes password_hash or token
USER_COLUMNS = 'id, name, email, role, avatar, is_verified, created_at, updated_at'

password_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return password_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against its stored hash."""
    return password_context.verify(password, password_hash)

def normalize_email(email: Optional[str]) -> str:
    """Trim and lower-case an email address."""
    return (email or '').strip().lower()

class AuthManager:
    """Manages users' credentials and tokens."""
    
    def __init__(self, pool=None):
        """Initialize auth manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure database pool is available."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None
    ) -> Dict[str, Any]:
        """Register a new artist or buyer.
        
        Args:
            name: Display name
            email: Email address, stored trimmed and lower-cased
            password: Plain text password, at least 6 characters after trimming
            role: ARTIST or BUYER, defaults to BUYER
            
        Returns:
            The created user
            
        Raises:
            ValidationError: If the password is too short or the role not allowed
            ConflictError: If the email is already registered
        """
        role = role or 'BUYER'
        if role not in SELF_REGISTER_ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(SELF_REGISTER_ROLES)}")
        return await self.create_user(name, email, password, role)
    
    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: str
    ) -> Dict[str, Any]:
        """Create a user with any role. Artists also get an empty profile.
        
        Raises:
            ValidationError: If name, password or role are invalid
            ConflictError: If the email is already registered
        """
        name = (name or '').strip()
        email = normalize_email(email)
        password = (password or '').strip()
        
        if not name:
            raise ValidationError("Name is required")
        if not email or '@' not in email:
            raise ValidationError("Please enter a valid email")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if role not in ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")
        
        await self.ensure_pool()
        
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    exists = await conn.fetchval(
                        'SELECT EXISTS(SELECT 1 FROM users WHERE email = $1)',
                        email
                    )
                    if exists:
                        raise ConflictError("User already exists")
                    
                    user = await conn.fetchrow(
                        f'''
                        INSERT INTO users (name, email, password_hash, role)
                        VALUES ($1, $2, $3, $4)
                        RETURNING {USER_COLUMNS}
                        ''',
                        name,
                        email,
                        hash_password(password),
                        role
                    )
                    
                    if role == 'ARTIST':
                        await conn.execute(
                            '''
                            INSERT INTO artist_profiles (user_id) VALUES ($1)
                            ON CONFLICT (user_id) DO NOTHING
                            ''',
                            user['id']
                        )
        except UniqueViolationError:
            raise ConflictError("User already exists")
        
        logger.info(f"Registered {role} user {user['id']}")
        return dict(user)
    
    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Check credentials and issue a fresh token.
        
        Returns:
            Dict containing the token and the user
            
        Raises:
            ValidationError: If the password is empty
            NotFoundError: If no user has this email
            AuthenticationError: If the password is wrong
        """
        email = normalize_email(email)
        password = (password or '').strip()
        if not password:
            raise ValidationError("Password is required")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                'SELECT id, password_hash FROM users WHERE email = $1',
                email
            )
            if not row:
                raise NotFoundError("User not found")
            
            if not verify_password(password, row['password_hash']):
                logger.warning(f"Failed login attempt for user {row['id']}")
                raise AuthenticationError("Invalid credentials")
            
            token = secrets.token_hex(TOKEN_BYTES)
            user = await conn.fetchrow(
                f'''
                UPDATE users SET token = $2, updated_at = now()
                WHERE id = $1
                RETURNING {USER_COLUMNS}
                ''',
                row['id'],
                token
            )
        
        return {
            'token': token,
            'user': dict(user)
        }
    
    async def verify_token(self, token: str) -> Dict[str, Any]:
        """Resolve a token to its user.
        
        Raises:
            AuthenticationError: If no user holds this token
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await conn.fetchrow(
                f'SELECT {USER_COLUMNS} FROM users WHERE token = $1',
                token
            )
        
        if not user:
            raise AuthenticationError("Invalid token")
        return dict(user)
    
    async def logout(self, user_id: Union[str, uuid.UUID]) -> None:
        """Log out by clearing the user's token."""
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            await conn.execute(
                'UPDATE users SET token = NULL, updated_at = now() WHERE id = $1',
                user_id
            )

# Create global instance
manager = AuthManager()

# FastAPI security scheme, errors are raised by the dependencies below
auth_scheme = HTTPBearer(
    auto_error=False,
    description="Opaque bearer token returned by /auth/login"
)

def _get_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Get the token from a Bearer header, or a bare Authorization header."""
    if credentials and credentials.credentials:
        return credentials.credentials
    header = request.headers.get('authorization', '').strip()
    if header and ' ' not in header:
        return header
    return None

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> Dict[str, Any]:
    """FastAPI dependency for getting the authenticated user.
    
    Raises:
        HTTPException: If the token is missing or unknown
    """
    token = _get_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token provided"
        )
    try:
        return await manager.verify_token(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> Optional[Dict[str, Any]]:
    """FastAPI dependency returning the user when a valid token is sent, else None."""
    token = _get_token(request, credentials)
    if not token:
        return None
    try:
        return await manager.verify_token(token)
    except AuthenticationError:
        return None

def authorize(*roles: str):
    """Build a dependency that only lets users with one of `roles` through."""
    async def check_role(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user['role'] not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(roles)}"
            )
        return user
    return check_role

# Export public interface
__all__ = [
    'manager',
    'AuthManager',
    'get_current_user',
    'get_optional_user',
    'authorize',
    'hash_password',
    'verify_password',
    'ROLES',
    'USER_COLUMNS',
    'normalize_email'
]
