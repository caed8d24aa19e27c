import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from housepoints.core.security import decode_access_token
from housepoints.db.session import get_db
from housepoints.models.user import STAFF_ROLES, User
from housepoints.realtime.bus import EventBus
from housepoints.realtime.hub import BroadcastHub
from housepoints.services.points import PointsService
from housepoints.services.storage import StorageService

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authorization token")

    token = credentials.credentials
    try:
        claims = decode_access_token(token)
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    user_id = claims.subject
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_staff(user: User = Depends(get_current_user)) -> User:
    if user.role not in STAFF_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff access required")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_broadcast_hub(request: Request) -> BroadcastHub:
    return request.app.state.broadcast_hub


def get_points_service(
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
) -> PointsService:
    return PointsService(db, bus)


def get_storage_service() -> StorageService:
    return StorageService()
