"""
Shared Module - Common utilities, configuration, schemas, and logging.
======================================================================

This module provides foundational components used across all other modules:

- config: Configuration loading and management
- logging: Structured logging setup
- schemas: Pydantic domain models
- exceptions: Error taxonomy
- utils: Utility functions (hashing, file I/O, etc.)
"""

from spotifier.shared.config import get_settings, Settings
from spotifier.shared.logging import get_logger, setup_logging
from spotifier.shared.exceptions import (
    SpotifierError,
    TransportError,
    TokenNotFound,
    AuthenticationFailed,
    SessionExpired,
    ParsingError,
    ElementNotFound,
    InvalidPeriod,
    TaskSubmissionFailed,
    TaskDeletionFailed,
)
from spotifier.shared.schemas import (
    User,
    Course,
    Rps,
    TopicInfo,
    DetailCourse,
    Content,
    Answer,
    Task,
    TaskStatus,
    TopicDetail,
    Period,
    Semester,
    DelayConfig,
    derive_task_status,
)
from spotifier.shared.utils import (
    compute_hash,
    ensure_directory,
    atomic_write_text,
    load_json,
    save_json,
)

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Logging
    "get_logger",
    "setup_logging",
    # Exceptions
    "SpotifierError",
    "TransportError",
    "TokenNotFound",
    "AuthenticationFailed",
    "SessionExpired",
    "ParsingError",
    "ElementNotFound",
    "InvalidPeriod",
    "TaskSubmissionFailed",
    "TaskDeletionFailed",
    # Schemas
    "User",
    "Course",
    "Rps",
    "TopicInfo",
    "DetailCourse",
    "Content",
    "Answer",
    "Task",
    "TaskStatus",
    "TopicDetail",
    "Period",
    "Semester",
    "DelayConfig",
    "derive_task_status",
    # Utils
    "compute_hash",
    "ensure_directory",
    "atomic_write_text",
    "load_json",
    "save_json",
]
