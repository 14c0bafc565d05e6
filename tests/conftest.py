"""
tests/conftest.py

- 테스트마다 임시 SQLite 파일 DB 생성 (executor 스레드에서도 각자 커넥션 사용)
- DataBuilder: 반/학생/시험/출결/달력 테스트 데이터 생성 헬퍼
"""

from datetime import date, datetime
from typing import Iterable, Optional

import pytest
from sqlalchemy.orm import sessionmaker

from database.db import Base, build_engine
from models import attendance, batches, calendar, exams, monthly_results, students  # noqa: F401
from models.attendance import Attendance
from models.batches import Batch
from models.calendar import AcademicCalendar
from models.exams import Exam, ExamSubmission
from models.students import Student
from utils.dates import days_in_month, sunday_based_weekday


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class DataBuilder:

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def batch(self, name: str = "Science A", code: Optional[str] = None) -> Batch:
        return self._save(Batch(name=name, subject="science", batch_code=code))

    def student(self, batch: Batch, first_name: str = "Student", last_name: str = "",
                class_level: Optional[str] = "6", is_active: bool = True) -> Student:
        return self._save(Student(
            first_name=first_name,
            last_name=last_name,
            batch_id=batch.id,
            class_level=class_level,
            is_active=is_active,
        ))

    def exam(self, batch: Batch, created_at: datetime, total_marks: int = 100,
             exam_mode: str = "regular", is_active: bool = True, title: str = "Weekly test") -> Exam:
        return self._save(Exam(
            title=title,
            batch_id=batch.id,
            exam_mode=exam_mode,
            total_marks=total_marks,
            is_active=is_active,
            created_at=created_at,
        ))

    def submission(self, exam: Exam, student: Student, marks_obtained=None, percentage=None) -> ExamSubmission:
        return self._save(ExamSubmission(
            exam_id=exam.id,
            student_id=student.id,
            marks_obtained=marks_obtained,
            percentage=percentage,
        ))

    def attendance(self, student: Student, day: date, status: str = "present", batch: Optional[Batch] = None):
        batch_id = batch.id if batch is not None else student.batch_id
        return self._save(Attendance(student_id=student.id, batch_id=batch_id, date=day, status=status))

    def attendance_run(self, student: Student, days: Iterable[date], status: str = "present"):
        for d in days:
            self.db.add(Attendance(student_id=student.id, batch_id=student.batch_id, date=d, status=status))
        self.db.commit()

    def calendar(self, year: int, month: int, working_days: Iterable[int]):
        """해당 월 전체 달력 행 생성. working_days에 있는 일(day)만 수업일"""
        working = set(working_days)
        for day in range(1, days_in_month(year, month) + 1):
            d = date(year, month, day)
            self.db.add(AcademicCalendar(
                date=d,
                year=year,
                month=month,
                day_of_week=sunday_based_weekday(d),
                is_working_day=day in working,
                day_type="regular" if day in working else "holiday",
            ))
        self.db.commit()


@pytest.fixture
def data(db):
    return DataBuilder(db)


class RecordingNotifier:
    """notify 호출만 기록하는 알림 대역"""

    def __init__(self):
        self.calls = []

    async def notify(self, batch_id, year, month, student_count):
        self.calls.append((batch_id, year, month, student_count))
        return False


@pytest.fixture
def notifier():
    return RecordingNotifier()
