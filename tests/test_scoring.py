import pytest

from schemas.monthly_results import StudentMonthlyData
from services.results.scoring import ScoreWeights, compose_score, rank_results
from utils.numbers import percentage, round_half_up


def _result(student_id, final_score, exam_average=0, attendance_percentage=0, batch_id=1):
    return StudentMonthlyData(
        student_id=student_id,
        batch_id=batch_id,
        class_level="6",
        final_score=final_score,
        exam_average=exam_average,
        attendance_percentage=attendance_percentage,
    )


# ==========================================================
# 반올림 / 백분율
# ==========================================================

@pytest.mark.parametrize("value, expected", [(0.5, 1), (2.5, 3), (81.4, 81), (80.5, 81), (84.49, 84)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_percentage_zero_working_days_is_zero():
    assert percentage(5, 0) == 0


def test_percentage_clamped_to_100():
    assert percentage(25, 20) == 100


# ==========================================================
# 최종 점수
# ==========================================================

def test_compose_score_example_student():
    # 82*0.7 + 75*0.2 + 90*0.1 = 57.4 + 15 + 9 = 81.4 → 81
    assert compose_score(82, 75, 90, ScoreWeights()) == 81


def test_compose_score_default_weights():
    # 84*0.7 + 75*0.2 + 90*0.1 = 58.8 + 15 + 9 = 82.8 → 83
    assert compose_score(84, 75, 90, ScoreWeights()) == 83


def test_compose_score_rounds_half_up():
    # 80*0.7 + 75*0.2 + 90*0.1 = 56 + 15 + 9 = 80 / 85*0.7 + 50*0.2 + 50*0.1 = 59.5 + 10 + 5 = 74.5 → 75
    assert compose_score(80, 75, 90, ScoreWeights()) == 80
    assert compose_score(85, 50, 50, ScoreWeights()) == 75


def test_compose_score_without_exams():
    assert compose_score(0, 75, 90, ScoreWeights()) == 24


def test_compose_score_bounds():
    assert compose_score(100, 100, 100, ScoreWeights()) == 100
    assert compose_score(0, 0, 0, ScoreWeights()) == 0
    assert compose_score(100, 100, 100, ScoreWeights(exam=1.0, attendance=0.5, bonus=0.5)) == 100


def test_compose_score_custom_weights():
    assert compose_score(80, 60, 40, ScoreWeights(exam=0.5, attendance=0.5, bonus=0.0)) == 70


def test_weights_from_settings(monkeypatch):
    from config.settings import settings
    monkeypatch.setattr(settings, "SCORE_WEIGHT_EXAM", 0.6)
    monkeypatch.setattr(settings, "SCORE_WEIGHT_ATTENDANCE", 0.3)
    weights = ScoreWeights.from_settings()
    assert (weights.exam, weights.attendance, weights.bonus) == (0.6, 0.3, 0.1)


# ==========================================================
# 순위
# ==========================================================

def test_rank_results_tie_break():
    ranked = rank_results([
        _result(3, 80, exam_average=85, attendance_percentage=70),
        _result(1, 80, exam_average=85, attendance_percentage=70),
        _result(2, 80, exam_average=88, attendance_percentage=60),
        _result(4, 92),
    ])
    assert [(r.student_id, r.rank) for r in ranked] == [(4, 1), (2, 2), (1, 3), (3, 4)]


def test_rank_results_attendance_breaks_exam_tie():
    ranked = rank_results([
        _result(1, 70, exam_average=70, attendance_percentage=50),
        _result(2, 70, exam_average=70, attendance_percentage=90),
    ])
    assert [r.student_id for r in ranked] == [2, 1]


def test_rank_results_distinct_ranks_and_total():
    ranked = rank_results([_result(i, 50) for i in range(1, 6)])
    assert [r.rank for r in ranked] == [1, 2, 3, 4, 5]
    assert all(r.total_students == 5 for r in ranked)


def test_rank_results_does_not_mutate_input():
    original = [_result(1, 10), _result(2, 20)]
    rank_results(original)
    assert [r.rank for r in original] == [0, 0]


def test_rank_results_empty():
    assert rank_results([]) == []
