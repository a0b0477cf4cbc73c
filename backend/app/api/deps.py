from collections.abc import Generator
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.security import decode_token
from app.db.session import SessionLocal
from app.services.slot_assignment import EditContext

security = HTTPBearer()


@dataclass(frozen=True)
class Actor:
    """Identity and capability asserted by the school's identity service."""

    user_id: str
    school_id: str
    can_edit_timetable: bool

    def edit_context(self, section_id: str) -> EditContext:
        return EditContext(
            school_id=self.school_id,
            section_id=section_id,
            can_edit=self.can_edit_timetable,
            actor_id=self.user_id,
        )


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def actor_from_token(token: str) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
    except JWTError as exc:
        raise credentials_exception from exc

    user_id = payload.get("sub")
    school_id = payload.get("school_id")
    if not user_id or not school_id:
        raise credentials_exception
    return Actor(
        user_id=str(user_id),
        school_id=str(school_id),
        can_edit_timetable=payload.get("can_edit_timetable") is True,
    )


def get_current_actor(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Actor:
    return actor_from_token(credentials.credentials)
