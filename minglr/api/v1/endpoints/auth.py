from fastapi import APIRouter, Depends, Query, status
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional
from minglr.api.deps import get_auth_service, get_session, load_session
from minglr.core.security import security
from minglr.core.session import SessionContext
from minglr.core.store import DocumentStore
from minglr.core.supabase import get_store
from minglr.schemas.user import UserCreate, UserLogin, Token, UserProfile
from minglr.services.auth_service import AuthService

router = APIRouter()

@router.post("/register", response_model=Token)
async def register(user: UserCreate, auth: AuthService = Depends(get_auth_service), store: DocumentStore = Depends(get_store)):
    """Register a new user"""
    access_token, identity = await auth.sign_up(user.email, user.password, user.name)
    session = await load_session(identity, store)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": session.user
    }

@router.post("/login", response_model=Token)
async def login(credentials: UserLogin, auth: AuthService = Depends(get_auth_service), store: DocumentStore = Depends(get_store)):
    """
    Sign in with email and password

    Args:
        credentials (UserLogin): Email and password.

    Returns:
        Token: The provider's access token and the user's profile, created on first sign-in.
    """
    access_token, identity = await auth.sign_in(credentials.email, credentials.password)
    session = await load_session(identity, store)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": session.user
    }

@router.get("/oauth/{provider}")
async def oauth_sign_in(provider: str, redirect_to: Optional[str] = Query(None), auth: AuthService = Depends(get_auth_service)) -> dict:
    """URL to send the browser to for a third-party sign-in"""
    url = await auth.oauth_url(provider, redirect_to)
    return {"url": url}

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(credentials: HTTPAuthorizationCredentials = Depends(security), auth: AuthService = Depends(get_auth_service)):
    """Sign out and revoke the current session"""
    await auth.sign_out(credentials.credentials)

@router.get("/me", response_model=UserProfile)
async def get_current_user_info(session: SessionContext = Depends(get_session)):
    """Get current user information"""
    return session.user
