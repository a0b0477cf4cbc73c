from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from app.api.deps import actor_from_token
from app.core.config import get_settings
from app.core.security import create_access_token


def test_token_round_trip_carries_edit_capability():
    token = create_access_token("user-1", school_id="school-1", can_edit_timetable=True)

    actor = actor_from_token(token)

    assert actor.user_id == "user-1"
    assert actor.school_id == "school-1"
    assert actor.can_edit_timetable is True

    ctx = actor.edit_context("section-1")
    assert ctx.can_edit is True
    assert ctx.actor_id == "user-1"
    assert ctx.section_id == "section-1"


def test_capability_must_be_an_explicit_true():
    settings = get_settings()
    token = jwt.encode(
        {"sub": "user-1", "school_id": "school-1", "can_edit_timetable": "true"},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )

    assert actor_from_token(token).can_edit_timetable is False


def test_token_without_school_is_rejected():
    settings = get_settings()
    token = jwt.encode({"sub": "user-1"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    with pytest.raises(HTTPException) as exc_info:
        actor_from_token(token)
    assert exc_info.value.status_code == 401


def test_expired_or_forged_token_is_rejected():
    expired = create_access_token("user-1", school_id="school-1", expires_delta=timedelta(minutes=-5))
    forged = jwt.encode({"sub": "user-1", "school_id": "school-1"}, "wrong-secret", algorithm="HS256")

    for token in (expired, forged):
        with pytest.raises(HTTPException) as exc_info:
            actor_from_token(token)
        assert exc_info.value.status_code == 401
