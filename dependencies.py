# dependencies.py
"""
Shared FastAPI dependencies: bearer-token auth, the acting user and the
ledger services wired to the configured database.
"""
from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import SessionLocal
from services.activity_log import ActivitySink, LoggingActivitySink
from services.bulk_service import BulkOperationCoordinator
from services.payment_service import PaymentService

_activity_sink = LoggingActivitySink()


def get_app_settings() -> Settings:
     return get_settings()


def get_session_factory() -> Callable[[], Session]:
     return SessionLocal


def get_activity_sink() -> ActivitySink:
     return _activity_sink


# Token Auth Dependency
def verify_token(request: Request, settings: Settings = Depends(get_app_settings)) -> dict:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
     if not settings.jwt_secret:
          raise HTTPException(
               status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
               detail="Token verification is not configured",
          )
     token = auth.split(" ", 1)[1]
     try:
          return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
     except JWTError:
          raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")


def get_actor(token: dict = Depends(verify_token)) -> str:
     """The acting user recorded on history rows: the token's sub, else its id claim."""
     actor = token.get("sub") or token.get("id")
     if actor is None or not str(actor).strip():
          raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token has no subject")
     return str(actor)


def get_payment_service(
     session_factory: Callable[[], Session] = Depends(get_session_factory),
     settings: Settings = Depends(get_app_settings),
     activity_sink: ActivitySink = Depends(get_activity_sink),
) -> PaymentService:
     return PaymentService(session_factory=session_factory, settings=settings, activity_sink=activity_sink)


def get_bulk_coordinator(
     session_factory: Callable[[], Session] = Depends(get_session_factory),
     settings: Settings = Depends(get_app_settings),
     activity_sink: ActivitySink = Depends(get_activity_sink),
) -> BulkOperationCoordinator:
     return BulkOperationCoordinator(
          session_factory=session_factory,
          settings=settings,
          activity_sink=activity_sink,
     )
