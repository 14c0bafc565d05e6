from datetime import date, datetime

import pytest

from models.monthly_results import MonthlyResult, TopPerformer
from services.results import monthly_processor as processor_module
from services.results.calendar_provider import CalendarProvider
from services.results.errors import ResultPersistenceError
from services.results.monthly_processor import MonthlyProcessor
from services.results.scoring import ScoreWeights


@pytest.fixture
def processor(db):
    return MonthlyProcessor(
        db,
        weights=ScoreWeights(),
        calendar=CalendarProvider(db, default_working_weekdays=[0, 1, 2, 3]),
        class_levels=["6", "7", "8", "9", "10"],
        top_performer_limit=5,
    )


@pytest.fixture
def march(data):
    """수업일 3/1~3/20, 학생 1명: 출석 15 / 공결 3 / 결석 2, 시험 80·85·81"""
    data.calendar(2025, 3, working_days=range(1, 21))
    batch = data.batch()
    student = data.student(batch, first_name="Asha", last_name="Roy", class_level="8")
    data.attendance_run(student, [date(2025, 3, d) for d in range(1, 16)], "present")
    data.attendance_run(student, [date(2025, 3, d) for d in range(16, 19)], "excused")
    data.attendance_run(student, [date(2025, 3, d) for d in range(19, 21)], "absent")
    data.attendance(student, date(2025, 3, 25), "present")   # 휴일 기록 → 무시
    for day, pct in [(3, 80), (10, 85), (17, 81)]:
        exam = data.exam(batch, datetime(2025, 3, day, 9, 0))
        data.submission(exam, student, percentage=pct)
    return batch, student


def _row(db, student_id):
    return db.query(MonthlyResult).filter_by(student_id=student_id, year=2025, month=3).one()


def test_full_student_result(db, processor, march):
    batch, student = march

    stats = processor.process_monthly_results(2025, 3)

    row = _row(db, student.id)
    assert (row.present_days, row.excused_days, row.absent_days, row.working_days) == (15, 3, 2, 20)
    assert (row.attendance_percentage, row.bonus_marks) == (75, 90)
    assert (row.exam_average, row.total_exams) == (82, 3)
    assert row.final_score == 81
    assert (row.class_rank, row.total_students, row.class_level) == (1, 1, "8")
    assert stats.total_batches == 1
    assert stats.successful_results == 1
    assert stats.failed_results == 0
    assert stats.leaderboard_updated is True


def test_student_without_exams(db, processor, data, march):
    batch, _ = march
    newcomer = data.student(batch, first_name="New")
    data.attendance_run(newcomer, [date(2025, 3, d) for d in range(1, 16)], "present")
    data.attendance_run(newcomer, [date(2025, 3, d) for d in range(16, 19)], "excused")

    processor.process_monthly_results(2025, 3)

    row = _row(db, newcomer.id)
    assert (row.exam_average, row.total_exams) == (0, 0)
    assert row.final_score == 24


def test_zero_working_days(db, data):
    batch = data.batch()
    student = data.student(batch)
    data.attendance(student, date(2025, 3, 3), "present")
    processor = MonthlyProcessor(db, weights=ScoreWeights(), calendar=CalendarProvider(db, default_working_weekdays=[]))

    processor.process_monthly_results(2025, 3)

    row = _row(db, student.id)
    assert row.working_days == 0
    assert (row.attendance_percentage, row.bonus_marks) == (0, 0)


def test_active_students_only_and_ranks(db, processor, data, march):
    batch, student = march
    data.student(batch, first_name="Gone", is_active=False)
    second = data.student(batch, first_name="Second")
    third = data.student(batch, first_name="Third")

    processor.process_monthly_results(2025, 3)

    rows = db.query(MonthlyResult).filter_by(batch_id=batch.id).order_by(MonthlyResult.class_rank).all()
    assert [r.student_id for r in rows] == [student.id, second.id, third.id]
    assert [r.class_rank for r in rows] == [1, 2, 3]
    assert all(r.total_students == 3 for r in rows)
    assert all(0 <= r.final_score <= 100 for r in rows)


def test_reprocessing_is_idempotent(db, processor, data, march):
    batch, _ = march
    data.student(batch, first_name="Other", class_level="6")

    def snapshot():
        return sorted(
            (r.student_id, r.batch_id, r.exam_average, r.attendance_percentage, r.bonus_marks, r.final_score, r.class_rank)
            for r in db.query(MonthlyResult).all()
        )

    processor.process_monthly_results(2025, 3)
    first = snapshot()
    processor.process_monthly_results(2025, 3)

    assert snapshot() == first
    assert db.query(TopPerformer).filter_by(year=2025, month=3).count() == 2


def test_student_failure_is_excluded(db, processor, data, march, monkeypatch):
    batch, student = march
    broken = data.student(batch, first_name="Broken")
    original = processor.calculate_student_result

    def flaky(s, *args):
        if s.id == broken.id:
            raise ValueError("bad data")
        return original(s, *args)

    monkeypatch.setattr(processor, "calculate_student_result", flaky)
    stats = processor.process_monthly_results(2025, 3)

    assert stats.successful_results == 1
    assert db.query(MonthlyResult).filter_by(student_id=broken.id).count() == 0
    assert _row(db, student.id).total_students == 1


def test_batch_failure_does_not_stop_others(db, processor, data, march, monkeypatch):
    batch, student = march
    other = data.batch("Math B")
    other_student = data.student(other, first_name="Other")
    original = processor_module.replace_monthly_results

    def failing_for_first(session, batch_id, *args):
        if batch_id == batch.id:
            raise ResultPersistenceError("boom")
        return original(session, batch_id, *args)

    monkeypatch.setattr(processor_module, "replace_monthly_results", failing_for_first)
    stats = processor.process_monthly_results(2025, 3)

    assert stats.total_batches == 2
    assert stats.failed_results == 1
    assert stats.failed_batch_ids == [batch.id]
    assert stats.successful_results == 1
    assert db.query(MonthlyResult).filter_by(student_id=other_student.id).count() == 1
    assert db.query(MonthlyResult).filter_by(student_id=student.id).count() == 0


def test_leaderboard_failure_is_reported(db, processor, march, monkeypatch):
    def failing_rebuild(*args, **kwargs):
        raise ResultPersistenceError("cache down")

    monkeypatch.setattr(processor_module, "rebuild_top_performers", failing_rebuild)
    stats = processor.process_monthly_results(2025, 3)

    assert stats.successful_results == 1
    assert stats.leaderboard_updated is False


def test_explicit_batch_ids(db, processor, data, march):
    batch, _ = march
    other = data.batch("Math B")
    data.student(other)

    stats = processor.process_monthly_results(2025, 3, batch_ids=[other.id, other.id])

    assert stats.total_batches == 1
    assert db.query(MonthlyResult).filter_by(batch_id=batch.id).count() == 0


def test_processing_refreshes_calendar_summary(db, processor, data):
    batch = data.batch()
    data.student(batch)

    processor.process_monthly_results(2025, 3)

    from models.calendar import MonthlyCalendarSummary
    assert db.query(MonthlyCalendarSummary).filter_by(year=2025, month=3).one().working_days == 17


def test_month_status_and_statistics(db, processor, data, march):
    batch, _ = march
    data.student(batch, first_name="Second")

    assert processor.is_month_processed(2025, 3) is False
    assert processor.get_month_statistics(2025, 3) is None

    processor.process_monthly_results(2025, 3)

    stats = processor.get_month_statistics(2025, 3)
    assert processor.is_month_processed(2025, 3) is True
    assert (stats.total_results, stats.total_batches) == (2, 1)
    assert stats.highest_score == 81
    assert stats.lowest_score == 0
    assert stats.average_score == 40.5


def test_zero_top_performer_limit_is_kept(db, march):
    processor = MonthlyProcessor(
        db,
        weights=ScoreWeights(),
        calendar=CalendarProvider(db),
        class_levels=["8"],
        top_performer_limit=0,
    )

    stats = processor.process_monthly_results(2025, 3)

    assert stats.successful_results == 1
    assert db.query(TopPerformer).count() == 0
