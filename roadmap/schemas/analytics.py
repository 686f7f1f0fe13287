"""
Analytics response schemas.

GET /api/analytics/overview          → OverviewResponse
GET /api/analytics/completions       → list[CompletionsPointResponse]
GET /api/analytics/by-student        → list[StudentCompletionsResponse]
GET /api/analytics/throughput        → list[ThroughputPointResponse]
GET /api/analytics/backlog           → BacklogResponse
GET /api/analytics/overdue           → OverdueResponse
GET /api/analytics/time-to-complete  → TimeToCompleteResponse
GET /api/analytics/attendance        → AttendanceResponse
GET /api/analytics/points-leaderboard → list[StudentPointsResponse]

Rates are 0–1 fractions; `pct_complete` is the only 0–100 percentage.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class OverviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_goals: int = Field(description="Goals created in the date range.")
    completed_goals: int = Field(description="Of those, how many are completed.")
    pct_complete: float = Field(
        description="completed_goals / total_goals as a percentage. Range: 0–100.",
        examples=[60.0],
    )
    avg_days_to_complete: float = Field(
        description="Mean days from creation to completion, fractional, 2 places (0 when none)."
    )


class CompletionsPointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str = Field(examples=["2025-W36"])
    completions: int


class StudentCompletionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: int
    student_name: Optional[str] = None
    completions: int
    avg_days: float = Field(description="Mean days to complete for this student, fractional.")


class ThroughputPointResponse(BaseModel):
    label: str = Field(examples=["2025-08"])
    start: str = Field(description="First day of the bucket (ISO date).")
    end: str = Field(description="Last day of the bucket (ISO date).")
    created: int
    completed: int
    completion_rate: float = Field(
        description="completed / created. Range: 0.0–1.0 (0 when nothing was created).",
        examples=[0.8],
    )


class HistogramBucketResponse(BaseModel):
    bucket: str = Field(examples=["0-7"])
    count: int


class TopStudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: int
    student_name: Optional[str] = None
    open_count: int


class BacklogResponse(BaseModel):
    as_of: str
    total_open: int
    overdue: int = Field(description="Open goals whose target date is before as_of.")
    avg_days_open: float
    open_by_age: list[HistogramBucketResponse] = Field(
        description='Always four buckets: "0-7", "8-30", "31-90", "90+".'
    )
    top_students: list[TopStudentResponse]


class OverdueResponse(BaseModel):
    as_of: str
    open_overdue: int
    completed_count: int = Field(
        description="Goals with a target date completed within the date range."
    )
    completed_on_time: int
    on_time_rate: float = Field(
        description="completed_on_time / completed_count. Range: 0.0–1.0.",
        examples=[0.7],
    )


class TimeToCompleteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    count: int
    mean_days: float
    median_days: float
    p90_days: float
    histogram: list[HistogramBucketResponse] = Field(
        description='Buckets "0-1", "2-7", "8-30", "31-90", "90+".'
    )


class AttendanceCountsResponse(BaseModel):
    present: int
    absent: int
    late: int
    excused: int
    total: int
    attendance_rate: float = Field(description="present / total. Range: 0.0–1.0.")


class AttendancePointResponse(AttendanceCountsResponse):
    label: str
    start: str
    end: str


class AttendanceResponse(BaseModel):
    start: str
    end: str
    totals: AttendanceCountsResponse
    series: list[AttendancePointResponse]


class StudentPointsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: int
    student_name: Optional[str] = None
    completed_goals: int
    completed_points: int = Field(description="2 points per completed goal.")
    on_time_bonus: int = Field(description="3 points per goal completed by its target date.")
    total_points: int
