import os
import tempfile

# Must be set before app.db.session builds its engine.
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+pysqlite:///{os.path.join(tempfile.gettempdir(), 'timegrid-tests.db')}",
)

from dataclasses import dataclass  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.academic import (  # noqa: E402
    ClassSection,
    ClassSectionSubject,
    DirectoryMember,
    SchoolClass,
    Subject,
    TeacherSubjectAssignment,
)
from app.models.timetable import TimetablePeriod  # noqa: E402
from app.services.section_locks import clear_section_locks  # noqa: E402

SCHOOL_ID = "school-1"
OTHER_SCHOOL_ID = "school-2"


@dataclass
class SeededSchool:
    school_id: str
    class_id: str
    s1: str
    s2: str
    math: str
    english: str
    art: str
    p1: str
    p2: str
    lunch: str
    t1: str
    t2: str


@pytest.fixture()
def engine():
    clear_section_locks()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    clear_section_locks()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory) -> Session:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def seed_school(db: Session, school_id: str = SCHOOL_ID) -> SeededSchool:
    """Class 5 with sections A and B, two periods around a lunch break.

    Math and English are enabled for A, only Math for B. Art exists but is
    enabled nowhere. Math in A defaults to teacher t1.
    """
    school_class = SchoolClass(school_id=school_id, name="Class 5")
    db.add(school_class)
    db.flush()

    s1 = ClassSection(school_id=school_id, class_id=school_class.id, name="A")
    s2 = ClassSection(school_id=school_id, class_id=school_class.id, name="B")
    math = Subject(school_id=school_id, name="Math")
    english = Subject(school_id=school_id, name="English")
    art = Subject(school_id=school_id, name="Art")
    p1 = TimetablePeriod(school_id=school_id, label="P1", sort_order=1, start_time="08:00", end_time="08:45")
    p2 = TimetablePeriod(school_id=school_id, label="P2", sort_order=3, start_time="09:30", end_time="10:15")
    lunch = TimetablePeriod(
        school_id=school_id,
        label="Lunch",
        sort_order=2,
        start_time="08:45",
        end_time="09:30",
        is_break=True,
    )
    db.add_all([s1, s2, math, english, art, p1, p2, lunch])
    db.flush()

    db.add_all(
        [
            ClassSectionSubject(school_id=school_id, class_section_id=s1.id, subject_id=math.id),
            ClassSectionSubject(school_id=school_id, class_section_id=s1.id, subject_id=english.id),
            ClassSectionSubject(school_id=school_id, class_section_id=s2.id, subject_id=math.id),
            TeacherSubjectAssignment(
                school_id=school_id,
                class_section_id=s1.id,
                subject_id=math.id,
                teacher_user_id="t1",
            ),
            TeacherSubjectAssignment(
                school_id=school_id,
                class_section_id=s2.id,
                subject_id=math.id,
                teacher_user_id="t1",
            ),
            DirectoryMember(school_id=school_id, user_id="t1", display_name="Asha Rao", email="asha@example.com"),
            DirectoryMember(school_id=school_id, user_id="t2", display_name=None, email="ben@example.com"),
        ]
    )
    db.commit()

    return SeededSchool(
        school_id=school_id,
        class_id=school_class.id,
        s1=s1.id,
        s2=s2.id,
        math=math.id,
        english=english.id,
        art=art.id,
        p1=p1.id,
        p2=p2.id,
        lunch=lunch.id,
        t1="t1",
        t2="t2",
    )


@pytest.fixture()
def school(db_session) -> SeededSchool:
    return seed_school(db_session)


def auth_headers(*, can_edit: bool = True, school_id: str = SCHOOL_ID, user_id: str = "editor-1") -> dict:
    token = create_access_token(user_id, school_id=school_id, can_edit_timetable=can_edit)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def editor_headers() -> dict:
    return auth_headers(can_edit=True)


@pytest.fixture()
def viewer_headers() -> dict:
    return auth_headers(can_edit=False, user_id="viewer-1")


@pytest.fixture()
def headers_for():
    return auth_headers


@pytest.fixture()
def seed():
    return seed_school
