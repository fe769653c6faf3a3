"""
Tests for Extraction Module.
============================

Tests for:
- Dashboard: user profile, course table
- Course detail: description, RPS, topics
- Topic detail: contents, tasks, answers
- Date parsing
"""

from datetime import datetime

import pytest

from tests.conftest import render_topic


# ─────────────────────────────────────────────────────────────────────────────
# Dashboard Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestUserParsing:
    """Tests for the profile extractor."""

    def test_parse_user(self, dashboard_html: str):
        from spotifier.extraction import parse_user

        user = parse_user(dashboard_html)

        assert user.name == "Budi Santoso"
        assert user.nim == "2101234"

    def test_missing_profile(self):
        from spotifier.extraction import parse_user
        from spotifier.shared.exceptions import ElementNotFound

        with pytest.raises(ElementNotFound) as exc_info:
            parse_user("<html><body></body></html>")

        assert "profile" in exc_info.value.element

    def test_profile_without_name(self):
        from spotifier.extraction import parse_user
        from spotifier.shared.exceptions import ParsingError

        html = '<div class="user-profile"><span class="profile-text">2101234</span></div>'

        with pytest.raises(ParsingError):
            parse_user(html)


class TestCourseParsing:
    """Tests for the course table extractor."""

    def test_parse_courses(self, dashboard_html: str):
        from spotifier.extraction import parse_courses

        courses = parse_courses(dashboard_html)

        assert [c.id for c in courses] == [101, 102]
        first = courses[0]
        assert first.code == "KOM101"
        assert first.name == "Algoritma dan Pemrograman"
        assert first.credits == 3
        assert first.lecturer == "Dr. Siti Aminah"
        assert first.academic_year == "2025/2026 - Ganjil"
        assert first.href == "/mhs/dashboard/101"

    def test_missing_table(self):
        from spotifier.extraction import parse_courses
        from spotifier.shared.exceptions import ElementNotFound

        with pytest.raises(ElementNotFound):
            parse_courses("<html><body><p>Maintenance</p></body></html>")

    def test_empty_table(self):
        from spotifier.extraction import parse_courses

        html = """
        <table id="tabel-matakuliah"><tbody>
            <tr><td colspan="5">Tidak ada mata kuliah</td></tr>
        </tbody></table>
        """

        assert parse_courses(html) == []

    def test_row_without_link(self):
        from spotifier.extraction import parse_courses
        from spotifier.shared.exceptions import ParsingError

        html = """
        <table id="tabel-matakuliah"><tbody>
            <tr><td class="kode">X</td><td class="nama">No link</td></tr>
        </tbody></table>
        """

        with pytest.raises(ParsingError):
            parse_courses(html)


# ─────────────────────────────────────────────────────────────────────────────
# Course Detail Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestCourseDetailParsing:
    """Tests for the course detail extractor."""

    def test_merges_course_summary(self, course_detail_html: str, sample_course):
        from spotifier.extraction import parse_course_detail

        detail = parse_course_detail(course_detail_html, sample_course)

        assert detail.course_info == sample_course
        assert detail.description.startswith("Dasar-dasar algoritma, struktur kontrol")
        assert detail.rps is not None
        assert detail.rps.id == 55
        assert detail.rps.href == "/mhs/rps/55"

    def test_topics_in_order(self, course_detail_html: str, sample_course):
        from spotifier.extraction import parse_course_detail

        topics = parse_course_detail(course_detail_html, sample_course).topics

        assert [t.id for t in topics] == [201, 202, None]
        assert all(t.course_id == 101 for t in topics[:2])
        assert topics[0].href == "/mhs/topik/101/201"
        assert topics[0].access_time == datetime(2025, 9, 1, 8, 0)
        assert topics[0].is_accessible is True

    def test_locked_topic(self, course_detail_html: str, sample_course):
        from spotifier.extraction import parse_course_detail

        detail = parse_course_detail(course_detail_html, sample_course)
        locked = detail.topics[2]

        assert locked.is_accessible is False
        assert locked.href is None
        assert locked.access_time == datetime(2025, 9, 15, 8, 0)
        assert len(detail.accessible_topics) == 2

    def test_reparse_existing_detail(self, course_detail_html: str, sample_course):
        from spotifier.extraction import parse_course_detail

        detail = parse_course_detail(course_detail_html, sample_course)
        refreshed = parse_course_detail("<html><body></body></html>", detail)

        assert refreshed.course_info == sample_course
        assert refreshed.topics == []
        assert refreshed.rps is None

    def test_without_rps(self, sample_course):
        from spotifier.extraction import parse_course_detail

        detail = parse_course_detail("<html><body></body></html>", sample_course)

        assert detail.rps is None
        assert detail.topics == []
        assert detail.description == ""


# ─────────────────────────────────────────────────────────────────────────────
# Topic Detail Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestTopicParsing:
    """Tests for the topic page extractor."""

    def test_topic_header(self, topic_html: str):
        from spotifier.extraction import parse_topic_detail

        topic = parse_topic_detail(topic_html, 201, 101)

        assert topic.id == 201
        assert topic.href == "/mhs/topik/101/201"
        assert topic.description == "Pengenalan algoritma dan flowchart."
        assert topic.access_time == datetime(2025, 9, 1, 8, 0)

    def test_contents(self, topic_html: str):
        from spotifier.extraction import parse_topic_detail

        contents = parse_topic_detail(topic_html, 201, 101).contents

        assert [c.id for c in contents] == [301, 302]
        assert contents[0].youtube_id == "dQw4w9WgXcQ"
        assert contents[0].raw_html == "<p>Materi <b>pertama</b></p>"
        assert contents[1].youtube_id is None

    def test_non_decimal_content_id_falls_back_to_position(self, topic_html: str):
        from spotifier.extraction import parse_topic_detail

        html = topic_html.replace('data-id="302"', 'data-id="3²"')

        contents = parse_topic_detail(html, 201, 101).contents

        assert [c.id for c in contents] == [301, 2]

    def test_unanswered_task(self, topic_html: str):
        from spotifier.extraction import parse_topic_detail
        from spotifier.shared.schemas import TaskStatus

        task = parse_topic_detail(topic_html, 201, 101).tasks[0]

        assert task.id == 401
        assert task.course_id == 101
        assert task.topic_id == 201
        assert task.token == "tok123"
        assert task.title == "Tugas 1"
        assert task.file == "/storage/tugas/401.pdf"
        assert task.start_date == datetime(2020, 9, 1, 8, 0)
        assert task.due_date == datetime(2020, 9, 8, 23, 59)
        assert task.answer is None
        assert task.status == TaskStatus.NOT_SUBMITTED

    def test_graded_answer(self, graded_topic_html: str):
        from spotifier.extraction import parse_topic_detail
        from spotifier.shared.schemas import TaskStatus

        task = parse_topic_detail(graded_topic_html, 201, 101).tasks[0]
        answer = task.answer

        assert answer.id == 77
        assert answer.content == "Flowchart terlampir"
        assert answer.file_href == "/storage/jawaban/77/flowchart.pdf"
        assert answer.is_graded is True
        assert answer.score == 85.5
        assert answer.lecturer_notes == "Bagus"
        assert answer.date_submitted == datetime(2020, 9, 10, 10, 15)
        assert task.status == TaskStatus.GRADED

    def test_token_falls_back_to_page_meta(self):
        from spotifier.extraction import parse_topic_detail

        html = render_topic().replace('<input type="hidden" name="_token" value="tok123">', "")

        task = parse_topic_detail(html, 201, 101).tasks[0]

        assert task.token == "tok123"

    def test_missing_token(self):
        from spotifier.extraction import parse_topic_detail
        from spotifier.shared.exceptions import ElementNotFound

        with pytest.raises(ElementNotFound):
            parse_topic_detail(render_topic(token=""), 201, 101)

    def test_find_task(self, topic_html: str):
        from spotifier.extraction import parse_topic_detail

        topic = parse_topic_detail(topic_html, 201, 101)

        assert topic.find_task(401) is topic.tasks[0]
        assert topic.find_task(999) is None

    def test_custom_selectors(self):
        from spotifier.extraction import PortalParser, PortalSelectors

        parser = PortalParser(PortalSelectors(profile_text="#who"))
        user = parser.parse_user('<p id="who">Ani 2100001</p>')

        assert user.nim == "2100001"


# ─────────────────────────────────────────────────────────────────────────────
# Date Parsing Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestDateParsing:
    """Tests for portal timestamp parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("08-09-2025 23:59", datetime(2025, 9, 8, 23, 59)),
            ("08-09-2025 23:59:30", datetime(2025, 9, 8, 23, 59, 30)),
            ("2025-09-08 07:00", datetime(2025, 9, 8, 7, 0)),
            ("08/09/2025 07:00", datetime(2025, 9, 8, 7, 0)),
            ("2025-09-08T23:59:00+07:00", datetime(2025, 9, 8, 23, 59)),
            ("Diakses: 01-09-2025 08:00", datetime(2025, 9, 1, 8, 0)),
        ],
    )
    def test_formats(self, text, expected):
        from spotifier.extraction import parse_portal_datetime

        assert parse_portal_datetime(text) == expected

    @pytest.mark.parametrize("text", [None, "", "   ", "besok pagi"])
    def test_unparseable(self, text):
        from spotifier.extraction import parse_portal_datetime

        assert parse_portal_datetime(text) is None
