"""
Schemas Module - Pydantic data models for the SPOT client.
==========================================================

Defines the academic-record domain model produced by the extraction
pipeline:
- User, Course and DetailCourse
- Academic periods (year + semester)
- Topics, contents, tasks and answers
- Request pacing configuration

Records are frozen once built; a fresh fetch produces fresh records.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from spotifier.shared.exceptions import ParsingError

FROZEN = {"frozen": True}


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────


class Semester(int, Enum):
    """Academic semester type; the value is the ordinal used in period codes."""

    ODD = 1
    EVEN = 2
    SHORT = 3

    @property
    def label(self) -> str:
        """Name the portal renders for this semester."""
        return _SEMESTER_LABELS[self]

    @classmethod
    def from_name(cls, name: str) -> "Semester":
        """
        Map a semester name to a Semester, case-insensitively.

        Raises:
            ParsingError: If the name is not a known semester token
        """
        key = " ".join(name.strip().lower().split())
        try:
            return _SEMESTER_NAMES[key]
        except KeyError:
            raise ParsingError(f"Unknown semester type: {name}") from None


_SEMESTER_LABELS = {
    Semester.ODD: "Ganjil",
    Semester.EVEN: "Genap",
    Semester.SHORT: "SP",
}

_SEMESTER_NAMES = {
    "ganjil": Semester.ODD,
    "odd": Semester.ODD,
    "genap": Semester.EVEN,
    "even": Semester.EVEN,
    "sp": Semester.SHORT,
    "semester pendek": Semester.SHORT,
    "short": Semester.SHORT,
}


class TaskStatus(str, Enum):
    """Submission state of a task, always derived from answer and deadline."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    GRADED = "graded"
    NOT_SUBMITTED = "not_submitted"


# ─────────────────────────────────────────────────────────────────────────────
# Periods
# ─────────────────────────────────────────────────────────────────────────────

_PERIOD_CODE_RE = re.compile(r"^(\d{4})([123])$")


class Period(BaseModel):
    """
    An academic year + semester pairing.

    Two encodings are supported:
    - compact code used in request paths: ``"20251"`` (year + ordinal)
    - human label rendered by the portal: ``"2025/2026 - Ganjil"``

    Example:
        >>> Period.parse("2025/2026 - Genap").format()
        '20252'
    """

    year: int
    semester: Semester

    model_config = FROZEN

    def format(self) -> str:
        """Format as the compact ``YYYYN`` code."""
        return f"{self.year}{self.semester.value}"

    def label(self) -> str:
        """Format as the portal's human label."""
        return f"{self.year}/{self.year + 1} - {self.semester.label}"

    def __str__(self) -> str:
        return self.format()

    @classmethod
    def from_code(cls, code: str) -> "Period":
        """
        Decode a compact ``YYYYN`` period code.

        Raises:
            ParsingError: If the code is malformed
        """
        match = _PERIOD_CODE_RE.match(code.strip())
        if not match:
            raise ParsingError(f"Invalid period code: {code}")
        return cls(year=int(match.group(1)), semester=Semester(int(match.group(2))))

    @classmethod
    def parse(cls, text: str) -> "Period":
        """
        Parse a compact code or a ``"YYYY/YYYY - <Semester>"`` label.

        Args:
            text: ``"20251"``, ``"2025/2026 - Ganjil"``, ``"2024/2025 - SP"``, ...

        Returns:
            Parsed Period

        Raises:
            ParsingError: On any malformed year or unknown semester token
        """
        if _PERIOD_CODE_RE.match(text.strip()):
            return cls.from_code(text)

        parts = [p.strip() for p in text.split("-")]
        if len(parts) != 2:
            raise ParsingError(f"Invalid academic year format: {text}")

        year_part, semester_part = parts
        year_text = year_part.split("/")[0].strip()
        if not re.fullmatch(r"\d{4}", year_text):
            raise ParsingError(f"Cannot parse year from: {year_part}")

        return cls(year=int(year_text), semester=Semester.from_name(semester_part))


# ─────────────────────────────────────────────────────────────────────────────
# Users and Courses
# ─────────────────────────────────────────────────────────────────────────────


class User(BaseModel):
    """The logged-in student."""

    name: str
    nim: str = Field(..., description="Student identity number")

    model_config = FROZEN


class Course(BaseModel):
    """One row of the enrolled-course list."""

    id: int
    code: str
    name: str
    credits: int = 0
    lecturer: str = ""
    academic_year: str = Field("", description="Label such as '2025/2026 - Ganjil'")
    href: str = Field(..., description="Portal path of the course detail page")

    model_config = FROZEN


class Rps(BaseModel):
    """Reference to the course syllabus (Rencana Pembelajaran Semester)."""

    id: Optional[int] = None
    href: Optional[str] = None

    model_config = FROZEN


class TopicInfo(BaseModel):
    """Topic summary as listed on the course detail page."""

    id: Optional[int] = None
    course_id: Optional[int] = None
    access_time: Optional[datetime] = None
    is_accessible: bool = False
    href: Optional[str] = None

    model_config = FROZEN


class DetailCourse(Course):
    """A course merged with its detail page."""

    description: str = ""
    rps: Optional[Rps] = None
    topics: list[TopicInfo] = Field(default_factory=list)

    @property
    def course_info(self) -> Course:
        """The plain course summary part."""
        return Course.model_validate(self.model_dump(include=set(Course.model_fields)))

    @property
    def accessible_topics(self) -> list[TopicInfo]:
        return [t for t in self.topics if t.is_accessible]


# ─────────────────────────────────────────────────────────────────────────────
# Topics, Tasks and Answers
# ─────────────────────────────────────────────────────────────────────────────


class Content(BaseModel):
    """One instructional unit within a topic."""

    id: int
    youtube_id: Optional[str] = None
    raw_html: str = ""

    model_config = FROZEN


class Answer(BaseModel):
    """A student's submission for a task."""

    id: Optional[int] = None
    content: str = ""
    file_href: Optional[str] = None
    is_graded: bool = False
    lecturer_notes: str = ""
    score: float = 0.0
    date_submitted: Optional[datetime] = None

    model_config = FROZEN


def derive_task_status(
    answer: Optional[Answer],
    due_date: Optional[datetime],
    now: Optional[datetime] = None,
) -> TaskStatus:
    """
    Compute the status of a task.

    Precedence: graded answer, then any answer, then the deadline.
    A task without answer and without deadline is pending.
    """
    if answer is not None:
        return TaskStatus.GRADED if answer.is_graded else TaskStatus.SUBMITTED

    if now is None:
        now = datetime.now()
    if due_date is not None and due_date < now:
        return TaskStatus.NOT_SUBMITTED
    return TaskStatus.PENDING


class Task(BaseModel):
    """An assignment attached to a topic."""

    id: Optional[int] = None
    course_id: int
    topic_id: int
    token: str = Field(..., description="CSRF token required to submit this task")
    title: str = ""
    description: str = ""
    file: Optional[str] = Field(None, description="Reference file attached by the lecturer")
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    answer: Optional[Answer] = None

    model_config = FROZEN

    @computed_field
    @property
    def status(self) -> TaskStatus:
        """Status derived from the answer and the deadline."""
        return derive_task_status(self.answer, self.due_date)

    def status_at(self, now: datetime) -> TaskStatus:
        """Status as it would be at ``now``."""
        return derive_task_status(self.answer, self.due_date, now)


class TopicDetail(BaseModel):
    """Full content of a topic page."""

    id: int
    access_time: Optional[datetime] = None
    is_accessible: bool = True
    href: str
    description: Optional[str] = None
    contents: list[Content] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)

    model_config = FROZEN

    def find_task(self, task_id: int) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Pacing
# ─────────────────────────────────────────────────────────────────────────────


class DelayConfig(BaseModel):
    """Randomized delay applied before every request."""

    min_delay_ms: int = Field(1000, ge=0)
    max_delay_ms: int = Field(3000, ge=0)
    enabled: bool = True

    @model_validator(mode="after")
    def check_bounds(self) -> "DelayConfig":
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError("min_delay_ms must not exceed max_delay_ms")
        return self

    @classmethod
    def disabled(cls) -> "DelayConfig":
        return cls(min_delay_ms=0, max_delay_ms=0, enabled=False)
