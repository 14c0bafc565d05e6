# services/results/scoring.py

from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from config.settings import settings
from schemas.monthly_results import StudentMonthlyData
from utils.numbers import clamp, round_half_up, to_decimal

# ✅ 기본 가중치 (시험 70% / 출석 20% / 보너스 10%)
W_EXAM = 0.70
W_ATTENDANCE = 0.20
W_BONUS = 0.10


class ScoreWeights(BaseModel):
    """최종 점수 가중치. 튜닝은 설정값으로만 하고 계산 코드는 건드리지 않음"""
    exam: float = W_EXAM
    attendance: float = W_ATTENDANCE
    bonus: float = W_BONUS

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_settings(cls) -> "ScoreWeights":
        return cls(
            exam=settings.SCORE_WEIGHT_EXAM,
            attendance=settings.SCORE_WEIGHT_ATTENDANCE,
            bonus=settings.SCORE_WEIGHT_BONUS,
        )


def compose_score(
    exam_average: int,
    attendance_percentage: int,
    bonus_percentage: int,
    weights: Optional[ScoreWeights] = None,
) -> int:
    """finalScore = round(시험*W_exam + 출석*W_attendance + 보너스*W_bonus), 0~100"""
    weights = weights or ScoreWeights.from_settings()
    total = (
        Decimal(exam_average) * to_decimal(weights.exam)
        + Decimal(attendance_percentage) * to_decimal(weights.attendance)
        + Decimal(bonus_percentage) * to_decimal(weights.bonus)
    )
    return clamp(round_half_up(total))


def ranking_key(result: StudentMonthlyData) -> Tuple[int, int, int, int]:
    # 최종 점수 ↓, 시험 평균 ↓, 출석률 ↓, 학생 ID ↑
    return (-result.final_score, -result.exam_average, -result.attendance_percentage, result.student_id)


def rank_results(results: List[StudentMonthlyData]) -> List[StudentMonthlyData]:
    """
    반/월 단위 순위 부여
    - 동점은 ranking_key 순서로 완전히 정렬되므로 모든 학생이 서로 다른 순위(1..N)를 받음
    - total_students는 결과 개수
    """
    ordered = sorted(results, key=ranking_key)
    total = len(ordered)
    return [
        r.model_copy(update={"rank": position, "total_students": total})
        for position, r in enumerate(ordered, start=1)
    ]
