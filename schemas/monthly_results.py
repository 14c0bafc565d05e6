from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ==========================================================
# [계산 단계] 내부 계산 결과
# ==========================================================

class ExamAverage(BaseModel):
    average: int = 0                 # 0~100, 반올림(half-up)
    total_exams: int = 0             # 평균에 포함된(채점된) 시험 수


class AttendanceScore(BaseModel):
    present_days: int = 0
    excused_days: int = 0
    absent_days: int = 0
    attendance_percentage: int = 0   # present / 근무일
    bonus_percentage: int = 0        # (present + excused) / 근무일


class StudentMonthlyData(BaseModel):
    """학생 한 명의 월간 산출 결과 (순위 부여 전/후 공용)"""
    student_id: int
    student_name: str = ""
    batch_id: int
    class_level: str
    exam_average: int = 0
    total_exams: int = 0
    present_days: int = 0
    excused_days: int = 0
    absent_days: int = 0
    working_days: int = 0
    attendance_percentage: int = 0
    bonus_percentage: int = 0
    final_score: int = 0
    rank: int = 0                    # 정렬 후 부여
    total_students: int = 0          # 정렬 후 부여


class ProcessingStats(BaseModel):
    total_batches: int = 0
    total_students: int = 0
    successful_results: int = 0
    failed_results: int = 0
    processing_time_ms: int = 0
    failed_batch_ids: List[int] = []
    leaderboard_updated: bool = False


class MonthStatistics(BaseModel):
    year: int
    month: int
    total_results: int
    total_batches: int
    average_score: Optional[float] = None
    highest_score: Optional[int] = None
    lowest_score: Optional[int] = None


# ==========================================================
# [조회 응답] 저장된 결과
# ==========================================================

class MonthlyResultOut(BaseModel):
    student_id: int
    batch_id: int
    year: int
    month: int
    class_level: str
    exam_average: int
    total_exams: int
    present_days: int
    excused_days: int
    absent_days: int
    working_days: int
    attendance_percentage: int
    bonus_marks: int
    final_score: int
    class_rank: int
    total_students: int

    model_config = ConfigDict(from_attributes=True)


class TopPerformerOut(BaseModel):
    student_id: int
    year: int
    month: int
    class_level: str
    rank: int
    final_score: int
    student_name: str

    model_config = ConfigDict(from_attributes=True)


# ==========================================================
# [트리거] 요청/응답
# ==========================================================

TriggerStatus = Literal["processed", "skipped_in_progress", "exam_not_found", "incomplete"]


class TriggerOutcome(BaseModel):
    status: TriggerStatus
    exam_id: Optional[int] = None
    batch_id: Optional[int] = None
    year: Optional[int] = None
    month: Optional[int] = None
    key: Optional[str] = None
    stats: Optional[ProcessingStats] = None
    message: str = ""


class ManualTriggerRequest(BaseModel):
    year: Optional[int] = Field(None, ge=2020, le=2100, description="미지정 시 현재 연도")
    month: Optional[int] = Field(None, ge=1, le=12, description="미지정 시 현재 월")

    # 연/월은 둘 다 지정하거나 둘 다 생략
    @model_validator(mode="after")
    def _year_and_month_together(self):
        if (self.year is None) != (self.month is None):
            raise ValueError("year와 month는 함께 지정해야 합니다")
        return self


class MonthCompletionRequest(BaseModel):
    batch_id: int
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
