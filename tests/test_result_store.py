import pytest
from sqlalchemy.exc import OperationalError

from models.monthly_results import MonthlyResult
from schemas.monthly_results import StudentMonthlyData
from services.results.errors import ResultPersistenceError
from services.results.result_store import list_monthly_results, replace_monthly_results
from services.results.scoring import rank_results


def _results(batch_id, scores, first_student_id=1):
    return rank_results([
        StudentMonthlyData(student_id=first_student_id + i, batch_id=batch_id, class_level="6", final_score=s)
        for i, s in enumerate(scores)
    ])


def _rows(db, batch_id):
    return (
        db.query(MonthlyResult)
        .filter_by(batch_id=batch_id, year=2025, month=3)
        .order_by(MonthlyResult.class_rank)
        .all()
    )


def test_replace_inserts_ranked_rows(db):
    saved = replace_monthly_results(db, 1, 2025, 3, _results(1, [70, 90, 80]))

    rows = _rows(db, 1)
    assert saved == 3
    assert [(r.student_id, r.class_rank, r.total_students) for r in rows] == [(2, 1, 3), (3, 2, 3), (1, 3, 3)]


def test_replace_removes_stale_rows(db):
    replace_monthly_results(db, 1, 2025, 3, _results(1, [70, 90, 80]))
    replace_monthly_results(db, 1, 2025, 3, _results(1, [60, 50]))

    rows = _rows(db, 1)
    assert [r.student_id for r in rows] == [1, 2]
    assert all(r.total_students == 2 for r in rows)


def test_replace_is_scoped_to_batch_and_month(db):
    replace_monthly_results(db, 1, 2025, 3, _results(1, [70]))
    replace_monthly_results(db, 2, 2025, 3, _results(2, [60], first_student_id=10))
    replace_monthly_results(db, 1, 2025, 4, _results(1, [50]))

    replace_monthly_results(db, 1, 2025, 3, [])

    assert _rows(db, 1) == []
    assert len(_rows(db, 2)) == 1
    assert db.query(MonthlyResult).filter_by(batch_id=1, month=4).count() == 1


def test_replace_failure_keeps_previous_results(db, monkeypatch):
    replace_monthly_results(db, 1, 2025, 3, _results(1, [70, 90]))

    def failing_commit():
        raise OperationalError("INSERT", {}, Exception("lock timeout"))

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(ResultPersistenceError):
        replace_monthly_results(db, 1, 2025, 3, _results(1, [10]))
    monkeypatch.undo()

    assert [r.final_score for r in _rows(db, 1)] == [90, 70]


def test_replace_rejects_other_batch_results(db):
    with pytest.raises(ResultPersistenceError):
        replace_monthly_results(db, 1, 2025, 3, _results(2, [70]))


def test_list_monthly_results(db):
    replace_monthly_results(db, 1, 2025, 3, _results(1, [70, 90]))
    replace_monthly_results(db, 2, 2025, 3, _results(2, [60], first_student_id=10))

    assert len(list_monthly_results(db, 2025, 3)) == 3
    assert [r.student_id for r in list_monthly_results(db, 2025, 3, batch_id=1)] == [2, 1]
    assert list_monthly_results(db, 2025, 4) == []
