"""
Parser Module - Extract academic records from SPOT pages.
=========================================================

Turns the portal's server-rendered HTML into domain records:
- Student dashboard  -> User, list[Course]
- Course detail page -> DetailCourse (description, RPS, topic list)
- Topic page         -> TopicDetail (contents, tasks, answers)

Every function is pure: HTML in, record out. Missing structure raises
ElementNotFound, uninterpretable structure raises ParsingError.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bs4 import BeautifulSoup, Tag

from spotifier.shared.exceptions import ElementNotFound, ParsingError
from spotifier.shared.logging import get_logger
from spotifier.shared.schemas import (
    Answer,
    Content,
    Course,
    DetailCourse,
    Rps,
    Task,
    TopicDetail,
    TopicInfo,
    User,
)
from spotifier.shared.utils import clean_whitespace, extract_trailing_id

logger = get_logger(__name__)

DATETIME_FORMATS = (
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)

TOPIC_HREF_RE = re.compile(r"/mhs/topik/(\d+)/(\d+)")
YOUTUBE_ID_RE = re.compile(r"(?:youtube(?:-nocookie)?\.com/embed/|youtu\.be/|[?&]v=)([A-Za-z0-9_-]{6,})")
SCORE_RE = re.compile(r"(\d+(?:[.,]\d+)?)")


# ─────────────────────────────────────────────────────────────────────────────
# Selector Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class PortalSelectors:
    """CSS selectors for the SPOT student pages."""

    # Dashboard (/mhs)
    profile_text: str = ".user-profile .profile-text"
    course_table: str = "table#tabel-matakuliah"
    course_row: str = "tbody tr"
    course_code: str = ".kode"
    course_link: str = ".nama a[href]"
    course_credits: str = ".sks"
    course_lecturer: str = ".dosen"
    course_academic_year: str = ".tahun"

    # Course detail page (the course link, usually /mhs/dashboard/{id})
    course_description: str = ".deskripsi-matakuliah"
    rps_link: str = "a.rps-link[href]"
    topic_item: str = ".daftar-topik .topik"
    topic_link: str = "a[href*='/mhs/topik/']"
    topic_access_time: str = ".waktu-akses"
    topic_locked_class: str = "terkunci"

    # Topic detail (/mhs/topik/{course_id}/{topic_id})
    topic_header_access_time: str = ".topik-header .waktu-akses"
    topic_description: str = ".topik-deskripsi"
    content_item: str = ".konten"
    content_video: str = "iframe[src]"
    content_body: str = ".konten-isi"
    task_item: str = ".tugas"
    task_title: str = ".tugas-judul"
    task_description: str = ".tugas-deskripsi"
    task_file: str = "a.tugas-file[href]"
    task_start: str = ".tugas-mulai"
    task_due: str = ".tugas-selesai"
    task_token: str = "form input[name='_token']"
    task_id_field: str = "input[name='id_tg']"
    page_token: str = "meta[name='csrf-token'], input[name='_token']"

    # Answer block inside a task
    answer_item: str = ".jawaban"
    answer_content: str = ".jawaban-isi"
    answer_file: str = "a.jawaban-file[href]"
    answer_submitted: str = ".jawaban-waktu"
    answer_score: str = ".jawaban-nilai"
    answer_notes: str = ".jawaban-catatan"
    answer_delete_link: str = "a[href*='/mhs/tugas_del/']"


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def parse_portal_datetime(text: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp as rendered by the portal.

    Accepts ISO 8601 and the portal's day-first forms. Returns None for
    empty or unrecognized text. Timezone offsets are dropped; all times
    are portal-local.

    Example:
        >>> parse_portal_datetime("08-09-2025 23:59")
        datetime.datetime(2025, 9, 8, 23, 59)
    """
    if not text:
        return None
    text = clean_whitespace(text)
    if not text:
        return None

    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        pass

    # Labels such as "Diakses: 01-09-2025 08:00"
    match = re.search(r"\d{1,4}[-/]\d{1,2}[-/]\d{1,4}\s+\d{1,2}:\d{2}(?::\d{2})?", text)
    candidate = match.group(0) if match else text

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue

    logger.debug(f"Unrecognized date: {text!r}")
    return None


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    value = value.strip()
    return int(value) if value.isdecimal() else None


# ─────────────────────────────────────────────────────────────────────────────
# Parser Class
# ─────────────────────────────────────────────────────────────────────────────


class PortalParser:
    """
    Parser for SPOT student pages.

    Example:
        >>> parser = PortalParser()
        >>> user = parser.parse_user(html)
        >>> print(user.nim)
    """

    def __init__(self, selectors: Optional[PortalSelectors] = None):
        self.selectors = selectors or PortalSelectors()

    def _create_soup(self, html: str) -> BeautifulSoup:
        """Create BeautifulSoup object from HTML."""
        return BeautifulSoup(html or "", "lxml")

    def _text(self, root: Tag, selector: str) -> Optional[str]:
        """Whitespace-normalized text of the first match, or None."""
        element = root.select_one(selector)
        if element is None:
            return None
        return clean_whitespace(element.get_text(" "))

    def _datetime(self, root: Tag, selector: str) -> Optional[datetime]:
        element = root.select_one(selector)
        if element is None:
            return None
        return parse_portal_datetime(element.get("datetime") or element.get_text(" "))

    # ─────────────────────────────────────────────────────────────────────────
    # Dashboard
    # ─────────────────────────────────────────────────────────────────────────

    def parse_user(self, html: str) -> User:
        """
        Extract the logged-in user from the dashboard.

        The profile text reads ``"<name...> <nim>"``: the last token is the
        identity number, everything before it the name.

        Raises:
            ElementNotFound: No profile text element
            ParsingError: The element does not hold both a name and a number
        """
        soup = self._create_soup(html)
        element = soup.select_one(self.selectors.profile_text)
        if element is None:
            raise ElementNotFound("User profile text element")

        parts = element.get_text(" ").split()
        if not parts:
            raise ParsingError("Could not extract NIM.")

        nim = parts[-1]
        name = " ".join(parts[:-1])
        if not name:
            raise ParsingError("Could not extract user name.")

        return User(name=name, nim=nim)

    def _parse_course_row(self, row: Tag) -> Course:
        s = self.selectors

        link = row.select_one(s.course_link)
        if link is None:
            raise ParsingError("Course row without detail link")

        href = link["href"]
        course_id = extract_trailing_id(href)
        if course_id is None:
            raise ParsingError(f"Cannot extract course id from link: {href}")

        credits_text = self._text(row, s.course_credits) or ""
        credits_match = re.search(r"\d+", credits_text)

        return Course(
            id=course_id,
            code=self._text(row, s.course_code) or "",
            name=clean_whitespace(link.get_text(" ")),
            credits=int(credits_match.group(0)) if credits_match else 0,
            lecturer=self._text(row, s.course_lecturer) or "",
            academic_year=self._text(row, s.course_academic_year) or "",
            href=href,
        )

    def parse_courses(self, html: str) -> list[Course]:
        """
        Extract the enrolled-course list from the dashboard.

        Raises:
            ElementNotFound: The course table is missing
            ParsingError: A row has no usable detail link
        """
        soup = self._create_soup(html)
        table = soup.select_one(self.selectors.course_table)
        if table is None:
            raise ElementNotFound("Course table")

        courses = []
        for row in table.select(self.selectors.course_row):
            # Placeholder rows ("no courses") span the whole table
            if not row.select("td") or len(row.select("td")) == 1:
                continue
            courses.append(self._parse_course_row(row))

        logger.debug(f"Parsed {len(courses)} courses")
        return courses

    # ─────────────────────────────────────────────────────────────────────────
    # Course detail
    # ─────────────────────────────────────────────────────────────────────────

    def _parse_topic_info(self, item: Tag) -> TopicInfo:
        s = self.selectors
        link = item.select_one(s.topic_link)

        topic_id = course_id = None
        href = None
        if link is not None:
            href = link["href"]
            match = TOPIC_HREF_RE.search(href)
            if match:
                course_id, topic_id = int(match.group(1)), int(match.group(2))

        locked = s.topic_locked_class in (item.get("class") or [])

        return TopicInfo(
            id=topic_id,
            course_id=course_id,
            access_time=self._datetime(item, s.topic_access_time),
            is_accessible=link is not None and not locked,
            href=href,
        )

    def parse_course_detail(self, html: str, course: Course) -> DetailCourse:
        """
        Merge a course summary with its detail page.

        Args:
            html: Course detail page
            course: Summary from the course list

        Returns:
            DetailCourse with description, syllabus link and ordered topics
        """
        s = self.selectors
        soup = self._create_soup(html)

        rps = None
        rps_link = soup.select_one(s.rps_link)
        if rps_link is not None:
            rps = Rps(id=extract_trailing_id(rps_link["href"]), href=rps_link["href"])

        topics = [self._parse_topic_info(item) for item in soup.select(s.topic_item)]

        return DetailCourse(
            **course.model_dump(include=set(Course.model_fields)),
            description=self._text(soup, s.course_description) or "",
            rps=rps,
            topics=topics,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Topic detail
    # ─────────────────────────────────────────────────────────────────────────

    def _parse_content(self, item: Tag, position: int) -> Content:
        s = self.selectors

        youtube_id = None
        video = item.select_one(s.content_video)
        if video is not None:
            match = YOUTUBE_ID_RE.search(video["src"])
            if match:
                youtube_id = match.group(1)

        body = item.select_one(s.content_body)
        raw_html = body.decode_contents().strip() if body is not None else ""

        content_id = _parse_int(item.get("data-id"))
        return Content(
            id=content_id if content_id is not None else position,
            youtube_id=youtube_id,
            raw_html=raw_html,
        )

    def _parse_answer(self, item: Tag) -> Answer:
        s = self.selectors

        answer_id = _parse_int(item.get("data-id"))
        if answer_id is None:
            delete_link = item.select_one(s.answer_delete_link)
            if delete_link is not None:
                answer_id = extract_trailing_id(delete_link["href"])

        score = 0.0
        is_graded = False
        score_text = self._text(item, s.answer_score)
        if score_text:
            match = SCORE_RE.search(score_text)
            if match:
                score = float(match.group(1).replace(",", "."))
                is_graded = True

        file_link = item.select_one(s.answer_file)

        return Answer(
            id=answer_id,
            content=self._text(item, s.answer_content) or "",
            file_href=file_link["href"] if file_link is not None else None,
            is_graded=is_graded,
            lecturer_notes=self._text(item, s.answer_notes) or "",
            score=score,
            date_submitted=self._datetime(item, s.answer_submitted),
        )

    def _parse_task(
        self,
        item: Tag,
        course_id: int,
        topic_id: int,
        page_token: Optional[str],
    ) -> Task:
        s = self.selectors

        token_field = item.select_one(s.task_token)
        token = token_field.get("value") if token_field is not None else None
        token = token or page_token
        if not token:
            raise ElementNotFound("Task submission token")

        task_id = _parse_int(item.get("data-id"))
        if task_id is None:
            id_field = item.select_one(s.task_id_field)
            task_id = _parse_int(id_field.get("value")) if id_field is not None else None

        answer_item = item.select_one(s.answer_item)
        file_link = item.select_one(s.task_file)

        return Task(
            id=task_id,
            course_id=course_id,
            topic_id=topic_id,
            token=token,
            title=self._text(item, s.task_title) or "",
            description=self._text(item, s.task_description) or "",
            file=file_link["href"] if file_link is not None else None,
            start_date=self._datetime(item, s.task_start),
            due_date=self._datetime(item, s.task_due),
            answer=self._parse_answer(answer_item) if answer_item is not None else None,
        )

    def _page_token(self, soup: BeautifulSoup) -> Optional[str]:
        element = soup.select_one(self.selectors.page_token)
        if element is None:
            return None
        return element.get("content") or element.get("value")

    def parse_topic_detail(self, html: str, topic_id: int, course_id: int) -> TopicDetail:
        """
        Extract contents and tasks from a topic page.

        Args:
            html: Topic page
            topic_id: Topic the page belongs to
            course_id: Course the topic belongs to

        Raises:
            ElementNotFound: A task has no submission token on the page
        """
        s = self.selectors
        soup = self._create_soup(html)
        page_token = self._page_token(soup)

        contents = [
            self._parse_content(item, position)
            for position, item in enumerate(soup.select(s.content_item), 1)
        ]
        tasks = [
            self._parse_task(item, course_id, topic_id, page_token)
            for item in soup.select(s.task_item)
        ]

        logger.debug(
            f"Parsed topic {topic_id}: {len(contents)} contents, {len(tasks)} tasks"
        )

        return TopicDetail(
            id=topic_id,
            access_time=self._datetime(soup, s.topic_header_access_time),
            is_accessible=True,
            href=f"/mhs/topik/{course_id}/{topic_id}",
            description=self._text(soup, s.topic_description),
            contents=contents,
            tasks=tasks,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────

_default_parser = PortalParser()


def parse_user(html: str) -> User:
    """Extract the logged-in user from the dashboard HTML."""
    return _default_parser.parse_user(html)


def parse_courses(html: str) -> list[Course]:
    """Extract the course list from the dashboard HTML."""
    return _default_parser.parse_courses(html)


def parse_course_detail(html: str, course: Course) -> DetailCourse:
    """Merge a course with its detail page HTML."""
    return _default_parser.parse_course_detail(html, course)


def parse_topic_detail(html: str, topic_id: int, course_id: int) -> TopicDetail:
    """Extract a topic page's contents and tasks."""
    return _default_parser.parse_topic_detail(html, topic_id, course_id)
