from datetime import date

from services.results.attendance_scorer import calculate_attendance_score, score_attendance

WORKING_DATES = {date(2025, 3, d) for d in range(1, 21)}


def _records(present=0, excused=0, absent=0, start=1):
    statuses = ["present"] * present + ["excused"] * excused + ["absent"] * absent
    return [(date(2025, 3, start + i), s) for i, s in enumerate(statuses)]


def test_three_tier_scoring():
    score = score_attendance(_records(present=15, excused=3, absent=2), 20, WORKING_DATES)
    assert (score.present_days, score.excused_days, score.absent_days) == (15, 3, 2)
    assert score.attendance_percentage == 75
    assert score.bonus_percentage == 90


def test_records_on_non_working_days_are_ignored():
    records = _records(present=10) + [(date(2025, 3, 25), "present"), (date(2025, 3, 26), "absent")]
    score = score_attendance(records, 20, WORKING_DATES)
    assert score.present_days == 10
    assert score.absent_days == 0
    assert score.attendance_percentage == 50


def test_unknown_status_counts_as_absent():
    score = score_attendance([(date(2025, 3, 1), "late"), (date(2025, 3, 2), "present")], 20, WORKING_DATES)
    assert score.absent_days == 1
    assert score.present_days == 1


def test_zero_working_days():
    score = score_attendance(_records(present=5), 0, WORKING_DATES)
    assert score.attendance_percentage == 0
    assert score.bonus_percentage == 0


def test_percentages_are_clamped():
    score = score_attendance(_records(present=20), 10, WORKING_DATES)
    assert score.attendance_percentage == 100
    assert score.bonus_percentage == 100


def test_no_records():
    score = score_attendance([], 20, WORKING_DATES)
    assert score.attendance_percentage == 0
    assert score.bonus_percentage == 0


def test_calculate_from_db_filters_batch_and_month(db, data):
    batch = data.batch()
    other_batch = data.batch("Math B")
    student = data.student(batch)
    data.attendance_run(student, [date(2025, 3, d) for d in range(1, 16)], "present")
    data.attendance_run(student, [date(2025, 3, d) for d in range(16, 19)], "excused")
    data.attendance_run(student, [date(2025, 3, d) for d in range(19, 21)], "absent")
    data.attendance(student, date(2025, 2, 10), "present")                     # 다른 달
    data.attendance(student, date(2025, 3, 5), "absent", batch=other_batch)   # 다른 반

    score = calculate_attendance_score(db, student.id, batch.id, 2025, 3, 20, WORKING_DATES)
    assert (score.present_days, score.excused_days, score.absent_days) == (15, 3, 2)
    assert score.attendance_percentage == 75
    assert score.bonus_percentage == 90
