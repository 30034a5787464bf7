"""Firebase identity verification and local user provisioning."""

import logging
import os
from functools import lru_cache
from typing import Optional
from uuid import UUID

import firebase_admin
from fastapi import Depends, HTTPException, Request, status
from firebase_admin import auth, credentials
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models import UserDB

logger = logging.getLogger(__name__)


class FirebaseUser(BaseModel):
    """A verified Firebase identity taken from an ID token."""

    uid: str
    email: Optional[str] = None
    email_verified: bool = False
    claims: dict = {}


class AuthenticatedUser(BaseModel):
    """Firebase identity plus the local user id that owns all records."""

    firebase_uid: str
    user_id: UUID
    email: str
    firebase_user: FirebaseUser


@lru_cache(maxsize=1)
def initialize_firebase() -> firebase_admin.App:
    """Initialize the Firebase Admin SDK once.

    Raises:
        ValueError: If FIREBASE_PROJECT_ID is not configured
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass  # Not initialized yet

    project_id = settings.FIREBASE_PROJECT_ID
    key_path = settings.FIREBASE_SERVICE_ACCOUNT_KEY_PATH
    if not project_id:
        raise ValueError("FIREBASE_PROJECT_ID environment variable is required")

    if key_path and os.path.exists(key_path):
        return firebase_admin.initialize_app(credentials.Certificate(key_path))
    # Application Default Credentials for local development
    return firebase_admin.initialize_app(
        credentials.ApplicationDefault(), {"projectId": project_id}
    )


def get_firebase_auth() -> auth:
    """Dependency returning the firebase_admin.auth module, initialized."""
    initialize_firebase()
    return auth


def extract_token_from_request(request: Request) -> Optional[str]:
    """Return the Bearer token from the Authorization header, if any."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_firebase_token(
    request: Request,
    auth_instance: auth = Depends(get_firebase_auth),
) -> FirebaseUser:
    """Verify the request's Firebase ID token.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    token = extract_token_from_request(request)
    if not token:
        raise _unauthorized("Missing authentication token")

    try:
        decoded_token = auth_instance.verify_id_token(token)
    except auth.ExpiredIdTokenError as err:
        raise _unauthorized("Authentication token has expired") from err
    except auth.InvalidIdTokenError as err:
        raise _unauthorized("Invalid authentication token") from err
    except Exception as e:
        raise _unauthorized(f"Authentication failed: {str(e)}") from e

    return FirebaseUser(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        claims=decoded_token,
    )


async def get_or_create_user(
    firebase_user: FirebaseUser = Depends(verify_firebase_token),
    db: Session = Depends(get_db),
) -> AuthenticatedUser:
    """Resolve the local user for a Firebase identity, creating it on first login.

    A new user has no profile yet; profile endpoints report that as
    "needs onboarding".

    Raises:
        HTTPException: 401 if the identity has no email
        HTTPException: 500 if the user record cannot be created
    """
    if not firebase_user.email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User email is required",
        )

    user = db.query(UserDB).filter(UserDB.firebase_uid == firebase_user.uid).first()

    if not user:
        try:
            user = UserDB(firebase_uid=firebase_user.uid, email=firebase_user.email)
            db.add(user)
            db.commit()
            db.refresh(user)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to create user %s: %s", firebase_user.uid, e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create user: {str(e)}",
            ) from e
        logger.info("Created user %s for firebase uid %s", user.id, user.firebase_uid)

    return AuthenticatedUser(
        firebase_uid=firebase_user.uid,
        user_id=user.id,
        email=user.email,
        firebase_user=firebase_user,
    )
