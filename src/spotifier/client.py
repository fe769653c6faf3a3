"""
Client Module - Public entry point for the SPOT portal.
=======================================================

SpotifierClient ties the pieces together:
- RequestDispatcher for paced HTTP
- SessionAuthenticator for SSO login and expiry detection
- PortalParser for turning pages into records
- An optional CacheBackend for the course list and session cookies

Usage:
    >>> from spotifier import SpotifierClient
    >>> with SpotifierClient() as client:
    ...     client.login("2101234", "secret")
    ...     for course in client.get_courses():
    ...         print(course.code, course.name)
"""

import json
from pathlib import Path
from typing import Optional, Union

import requests
from pydantic import TypeAdapter, ValidationError

from spotifier.auth.authenticator import SessionAuthenticator
from spotifier.auth.session_store import load_session, save_session
from spotifier.cache.base import CacheBackend, get_cache_backend, namespaced_key
from spotifier.extraction.parser import PortalParser
from spotifier.shared.config import Settings, get_settings
from spotifier.shared.exceptions import (
    InvalidPeriod,
    ParsingError,
    TaskDeletionFailed,
    TaskSubmissionFailed,
)
from spotifier.shared.logging import get_logger
from spotifier.shared.schemas import (
    Course,
    DelayConfig,
    DetailCourse,
    Period,
    Semester,
    TopicDetail,
    TopicInfo,
    User,
)
from spotifier.shared.utils import url_path
from spotifier.transport.dispatcher import RequestDispatcher

logger = get_logger(__name__)

COURSES_CACHE_KEY = "courses"
SESSION_CACHE_KEY = "session"

DASHBOARD_PATH = "/mhs"
TOPIC_PATH = "/mhs/topik/{course_id}/{topic_id}"
PERIOD_PATH = "/adm/semester/{code}"
SUBMIT_PATH = "/mhs/tugas_store"
DELETE_PATH = "/mhs/tugas_del/{course_id}/{topic_id}/{answer_id}"

_courses_adapter = TypeAdapter(list[Course])


def _is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 400


class SpotifierClient:
    """
    Authenticated client for the SPOT student portal.

    One client owns one cookie jar and is meant to be used sequentially.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        delay_config: Optional[DelayConfig] = None,
        cache: Optional[CacheBackend] = None,
        cache_prefix: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Settings to use. If None, loads from config.
            delay_config: Pacing policy. If None, built from settings.pacing.
            cache: Cache backend. If None and caching is enabled, built from settings.
            cache_prefix: Namespace for cache keys. If None, uses settings.cache.prefix.
            session: HTTP session to send requests through
        """
        self.settings = settings or get_settings()
        pacing = self.settings.pacing

        if delay_config is None:
            delay_config = DelayConfig(
                min_delay_ms=pacing.min_delay_ms,
                max_delay_ms=pacing.max_delay_ms,
                enabled=pacing.enabled,
            )

        self.dispatcher = RequestDispatcher(
            delay_config=delay_config,
            session=session,
            user_agents=self.settings.portal.user_agents,
            timeout=self.settings.portal.timeout,
        )
        self.auth = SessionAuthenticator(
            self.dispatcher,
            portal=self.settings.portal,
            login_jitter_ms=(pacing.login_jitter_min_ms, pacing.login_jitter_max_ms),
            diagnostics_dir=self.settings.resolved_paths.diagnostics_dir,
        )
        self.parser = PortalParser()

        if cache is None and self.settings.cache.enabled:
            cache = get_cache_backend(
                self.settings.cache.backend,
                self.settings.resolved_paths.cache_dir,
            )
        self.cache = cache
        self.cache_prefix = cache_prefix if cache_prefix is not None else self.settings.cache.prefix

    # ─────────────────────────────────────────────────────────────────────────
    # Configuration
    # ─────────────────────────────────────────────────────────────────────────

    def set_cache(self, cache: Optional[CacheBackend]) -> None:
        """Replace the cache backend (None disables caching)."""
        self.cache = cache

    def set_cache_prefix(self, prefix: Optional[str]) -> None:
        """Namespace subsequent cache keys, e.g. by student number."""
        self.cache_prefix = prefix

    def set_delay_config(self, delay_config: DelayConfig) -> None:
        """Replace the pacing policy."""
        self.dispatcher.set_delay_config(delay_config)

    # ─────────────────────────────────────────────────────────────────────────
    # Authentication
    # ─────────────────────────────────────────────────────────────────────────

    def login(self, nim: str, password: str) -> None:
        """
        Log in through the SSO.

        Raises:
            TokenNotFound: The login page had no execution token
            AuthenticationFailed: Credentials were rejected
            TransportError: A request failed
        """
        self.auth.login(nim, password)

    def logout(self) -> None:
        """Drop all session cookies."""
        self.auth.logout()

    @property
    def is_authenticated(self) -> bool:
        return self.auth.is_authenticated

    # ─────────────────────────────────────────────────────────────────────────
    # Cache helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _cache_key(self, key: str) -> str:
        return namespaced_key(self.cache_prefix, key)

    def _cache_get(self, key: str) -> Optional[str]:
        if self.cache is None:
            return None
        try:
            return self.cache.get(self._cache_key(key))
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    def _cache_set(self, key: str, value: str, ttl_seconds: int) -> None:
        if self.cache is None:
            return
        try:
            if not self.cache.set(self._cache_key(key), value, ttl_seconds):
                logger.debug(f"Cache refused write for {key}")
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    def _cache_delete(self, key: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.delete(self._cache_key(key))
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {e}")

    # ─────────────────────────────────────────────────────────────────────────
    # Profile and courses
    # ─────────────────────────────────────────────────────────────────────────

    def get_user_profile(self) -> User:
        """Fetch the logged-in student's name and NIM."""
        html = self.auth.fetch_page(DASHBOARD_PATH)
        return self.parser.parse_user(html)

    def get_courses(self, use_cache: bool = True) -> list[Course]:
        """
        Fetch the enrolled courses of the active period.

        Args:
            use_cache: Serve from and refresh the cache

        Returns:
            Courses in portal order
        """
        if use_cache:
            cached = self._cache_get(COURSES_CACHE_KEY)
            if cached is not None:
                try:
                    courses = _courses_adapter.validate_json(cached)
                    logger.debug(f"Loaded {len(courses)} courses from cache")
                    return courses
                except ValidationError as e:
                    logger.warning(f"Ignoring undecodable cached courses: {e.error_count()} errors")

        html = self.auth.fetch_page(DASHBOARD_PATH)
        courses = self.parser.parse_courses(html)
        logger.info(f"Fetched {len(courses)} courses")

        if use_cache:
            payload = _courses_adapter.dump_json(courses).decode("utf-8")
            self._cache_set(COURSES_CACHE_KEY, payload, self.settings.cache.courses_ttl)

        return courses

    def get_course_detail(self, course: Course) -> DetailCourse:
        """Fetch a course's description, syllabus link and topics."""
        html = self.auth.fetch_page(url_path(course.href))
        return self.parser.parse_course_detail(html, course)

    def get_course_detail_by_id(self, course_id: int) -> DetailCourse:
        """
        Look a course up in the course list and fetch its detail.

        Raises:
            ParsingError: No enrolled course has this id
        """
        for course in self.get_courses():
            if course.id == course_id:
                return self.get_course_detail(course)
        raise ParsingError(f"Course {course_id} not found")

    # ─────────────────────────────────────────────────────────────────────────
    # Topics
    # ─────────────────────────────────────────────────────────────────────────

    def get_topic_detail(self, topic_info: TopicInfo) -> TopicDetail:
        """
        Fetch a topic page from a topic reference.

        Raises:
            ParsingError: The reference lacks an id, course id or link
        """
        if topic_info.id is None or topic_info.course_id is None or not topic_info.href:
            raise ParsingError("Topic is not accessible (missing id, course id or link)")
        detail = self.get_topic_detail_by_id(topic_info.course_id, topic_info.id)
        if topic_info.access_time is not None and detail.access_time is None:
            detail = detail.model_copy(update={"access_time": topic_info.access_time})
        return detail

    def get_topic_detail_by_id(self, course_id: int, topic_id: int) -> TopicDetail:
        """Fetch a topic page by course and topic id."""
        html = self.auth.fetch_page(TOPIC_PATH.format(course_id=course_id, topic_id=topic_id))
        return self.parser.parse_topic_detail(html, topic_id, course_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Academic period
    # ─────────────────────────────────────────────────────────────────────────

    def change_period(
        self,
        period_or_year: Union[Period, int],
        semester: Optional[Semester] = None,
    ) -> None:
        """
        Switch the portal's active academic period.

        Args:
            period_or_year: A Period, or the starting year of the academic year
            semester: Semester, required when a year is given

        Raises:
            InvalidPeriod: The portal rejected the period
            ParsingError: The portal answered unexpectedly
        """
        if isinstance(period_or_year, Period):
            period = period_or_year
        else:
            if semester is None:
                raise ValueError("semester is required when a year is given")
            period = Period(year=period_or_year, semester=semester)

        path = PERIOD_PATH.format(code=period.format())
        response = self.dispatcher.get(f"{self.settings.portal.base_url}{path}")

        if _is_success(response) and url_path(response.url).startswith("/adm"):
            logger.info(f"Active period changed to {period.label()}")
            self._cache_delete(COURSES_CACHE_KEY)
            return

        if response.status_code == 500:
            raise InvalidPeriod(f"Portal rejected period {period.format()}")

        raise ParsingError(
            f"Unexpected response changing period: HTTP {response.status_code} at {response.url}"
        )

    def get_current_period_info(self) -> str:
        """
        Academic-year label of the active period, e.g. ``2025/2026 - Ganjil``.

        Raises:
            ParsingError: No courses to read the period from
        """
        courses = self.get_courses()
        if not courses:
            raise ParsingError("No courses found to determine the current period")
        return courses[0].academic_year

    def get_current_period(self) -> Period:
        """The active period as a Period."""
        return Period.parse(self.get_current_period_info())

    # ─────────────────────────────────────────────────────────────────────────
    # Task submissions
    # ─────────────────────────────────────────────────────────────────────────

    def submit_task(
        self,
        course_id: int,
        topic_id: int,
        task_id: int,
        token: str,
        content: str,
        file_name: Optional[str] = None,
        file_data: Optional[bytes] = None,
    ) -> None:
        """
        Submit an answer to a task.

        Args:
            course_id: Course id
            topic_id: Topic id
            task_id: Task id
            token: CSRF token taken from the task (Task.token)
            content: Answer text
            file_name: Optional attachment name
            file_data: Optional attachment content

        Raises:
            TaskSubmissionFailed: The portal did not accept the submission
        """
        fields = {
            "_token": token,
            "id_pn": str(course_id),
            "id_pt": str(topic_id),
            "id_tg": str(task_id),
            "isi": content,
        }
        files = None
        if file_data is not None:
            files = {"filename": (file_name or "attachment", file_data)}

        response = self.dispatcher.post_multipart(
            f"{self.settings.portal.base_url}{SUBMIT_PATH}", fields, files=files
        )
        if not _is_success(response):
            raise TaskSubmissionFailed(
                f"Submission of task {task_id} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.info(f"Submitted task {task_id} (course {course_id}, topic {topic_id})")

    def delete_task_submission(self, course_id: int, topic_id: int, answer_id: int) -> None:
        """
        Delete a previously submitted answer.

        Raises:
            TaskDeletionFailed: The portal did not accept the deletion
        """
        path = DELETE_PATH.format(course_id=course_id, topic_id=topic_id, answer_id=answer_id)
        response = self.dispatcher.get(f"{self.settings.portal.base_url}{path}")
        if not _is_success(response):
            raise TaskDeletionFailed(
                f"Deletion of answer {answer_id} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.info(f"Deleted answer {answer_id} (course {course_id}, topic {topic_id})")

    # ─────────────────────────────────────────────────────────────────────────
    # Session persistence
    # ─────────────────────────────────────────────────────────────────────────

    def save_cookies(self, path: Union[str, Path]) -> None:
        """Write the session cookies to a JSON file."""
        save_session(Path(path), self.auth.export_cookies())

    def load_cookies(self, path: Union[str, Path]) -> bool:
        """
        Restore session cookies from a JSON file.

        Returns:
            True if any cookie was restored
        """
        cookies = load_session(Path(path))
        return self.auth.import_cookies(cookies) > 0

    def save_session_to_cache(self) -> bool:
        """Store the session cookies in the cache. Returns False without a cache."""
        if self.cache is None:
            return False
        payload = json.dumps(self.auth.export_cookies())
        self._cache_set(SESSION_CACHE_KEY, payload, self.settings.cache.session_ttl)
        return True

    def restore_session_from_cache(self) -> bool:
        """
        Restore session cookies stored by :meth:`save_session_to_cache`.

        Returns:
            True if any cookie was restored
        """
        cached = self._cache_get(SESSION_CACHE_KEY)
        if cached is None:
            return False
        try:
            cookies = json.loads(cached)
        except json.JSONDecodeError:
            logger.warning("Ignoring undecodable cached session")
            return False
        if not isinstance(cookies, dict):
            return False
        return self.auth.import_cookies({k: str(v) for k, v in cookies.items()}) > 0

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.dispatcher.close()

    def __enter__(self) -> "SpotifierClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self.close()
