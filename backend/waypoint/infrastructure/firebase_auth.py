"""Firebase Token Verification — the only contact point with the identity provider.

Invariants:
    - firebase_admin app initialized at most once per process
    - Every verification failure surfaces as AuthenticationError (401)

Design Decisions:
    - verify_id_token is blocking (it may fetch Google's public certs), so it
      runs in a worker thread instead of on the event loop
    - Credentials from a service-account file when configured, otherwise
      application default credentials
"""

import asyncio
import logging

import firebase_admin
from firebase_admin import auth, credentials

from waypoint.config import get_settings
from waypoint.core.errors import AuthenticationError

logger = logging.getLogger(__name__)


def get_firebase_app() -> firebase_admin.App:
    """Return the default firebase app, initializing it on first use."""
    if firebase_admin._apps:
        return firebase_admin.get_app()

    settings = get_settings()
    options = (
        {"projectId": settings.firebase_project_id}
        if settings.firebase_project_id else None
    )
    cred = (
        credentials.Certificate(settings.firebase_credentials_path)
        if settings.firebase_credentials_path else None
    )
    logger.info("Initializing Firebase Admin SDK")
    return firebase_admin.initialize_app(credential=cred, options=options)


async def verify_token(token: str) -> dict:
    """Verify a Firebase ID token and return its decoded claims."""
    app = get_firebase_app()
    try:
        return await asyncio.to_thread(auth.verify_id_token, token, app)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError,
            auth.RevokedIdTokenError, auth.CertificateFetchError) as e:
        logger.warning(f"Token verification failed: {type(e).__name__}")
        raise AuthenticationError("Invalid token")
