"""
Pytest Configuration and Fixtures.
===================================

Shared fixtures for all test modules:
- Sample portal pages
- An in-process fake of the SSO + portal pair
- Ready-made clients wired to the fake
- Temporary directories
"""

import re
import tempfile
from pathlib import Path
from typing import Generator, Optional
from urllib.parse import urlparse

import pytest
import requests
from requests.cookies import RequestsCookieJar

BASE_URL = "https://spot.upi.edu"
LOGIN_URL = "https://sso.upi.edu/cas/login?service=https://spot.upi.edu/beranda"
VALID_NIM = "2101234"
VALID_PASSWORD = "rahasia"
CSRF_TOKEN = "tok123"


# ─────────────────────────────────────────────────────────────────────────────
# Path Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return project_root / "config" / "settings.yaml"


# ─────────────────────────────────────────────────────────────────────────────
# Sample Pages
# ─────────────────────────────────────────────────────────────────────────────

LOGIN_PAGE = """
<html><body>
<form id="fm1" method="post" action="/cas/login?service=https://spot.upi.edu/beranda">
    <input type="text" name="username">
    <input type="password" name="password">
    <input type="hidden" name="execution" value="e1s1">
    <input type="hidden" name="_eventId" value="submit">
</form>
</body></html>
"""

LOGIN_FAILED_PAGE = """
<html><body>
<div class="alert alert-danger">Invalid credentials.</div>
<form id="fm1" method="post">
    <input type="hidden" name="execution" value="e1s2">
</form>
</body></html>
"""

DASHBOARD_PAGE = """
<html><body>
<div class="user-profile">
    <img src="/img/avatar.png">
    <span class="profile-text">Budi  Santoso
        2101234</span>
</div>
<table id="tabel-matakuliah" class="table">
    <thead>
        <tr><th>Kode</th><th>Mata Kuliah</th><th>SKS</th><th>Dosen</th><th>Tahun</th></tr>
    </thead>
    <tbody>
        <tr>
            <td class="kode">KOM101</td>
            <td class="nama"><a href="/mhs/dashboard/101">Algoritma dan Pemrograman</a></td>
            <td class="sks">3 SKS</td>
            <td class="dosen">Dr. Siti Aminah</td>
            <td class="tahun">2025/2026 - Ganjil</td>
        </tr>
        <tr>
            <td class="kode">KOM202</td>
            <td class="nama"><a href="/mhs/dashboard/102">Basis Data</a></td>
            <td class="sks">2 SKS</td>
            <td class="dosen">Rudi Hartono, M.Kom.</td>
            <td class="tahun">2025/2026 - Ganjil</td>
        </tr>
    </tbody>
</table>
</body></html>
"""

COURSE_DETAIL_PAGE = """
<html><body>
<div class="deskripsi-matakuliah">
    Dasar-dasar algoritma,
    struktur kontrol dan pemrograman terstruktur.
</div>
<a class="rps-link" href="/mhs/rps/55">Lihat RPS</a>
<div class="daftar-topik">
    <div class="topik">
        <a href="/mhs/topik/101/201">Pertemuan 1</a>
        <span class="waktu-akses">01-09-2025 08:00</span>
    </div>
    <div class="topik">
        <a href="/mhs/topik/101/202">Pertemuan 2</a>
        <span class="waktu-akses">08-09-2025 08:00</span>
    </div>
    <div class="topik terkunci">
        <span>Pertemuan 3</span>
        <span class="waktu-akses">15-09-2025 08:00</span>
    </div>
</div>
</body></html>
"""

ANSWER_BLOCK = """
    <div class="jawaban" data-id="{answer_id}">
        <div class="jawaban-isi">{content}</div>
        {file_link}
        <span class="jawaban-waktu">10-09-2020 10:15</span>
        <span class="jawaban-nilai">{score}</span>
        <div class="jawaban-catatan">{notes}</div>
        <a class="jawaban-hapus" href="/mhs/tugas_del/101/201/{answer_id}">Hapus</a>
    </div>
"""

TOPIC_PAGE = """
<html>
<head><meta name="csrf-token" content="{token}"></head>
<body>
<div class="topik-header"><span class="waktu-akses">01-09-2025 08:00</span></div>
<div class="topik-deskripsi">Pengenalan algoritma dan flowchart.</div>
<div class="konten" data-id="301">
    <iframe src="https://www.youtube.com/embed/dQw4w9WgXcQ?rel=0"></iframe>
    <div class="konten-isi"><p>Materi <b>pertama</b></p></div>
</div>
<div class="konten" data-id="302">
    <div class="konten-isi"><p>Bacaan tambahan</p></div>
</div>
<div class="tugas" data-id="401">
    <h4 class="tugas-judul">Tugas 1</h4>
    <div class="tugas-deskripsi">Buat flowchart untuk algoritma pencarian.</div>
    <a class="tugas-file" href="/storage/tugas/401.pdf">Lampiran</a>
    <span class="tugas-mulai">01-09-2020 08:00</span>
    <span class="tugas-selesai">08-09-2020 23:59</span>
    {answer}
    <form action="/mhs/tugas_store" method="post" enctype="multipart/form-data">
        <input type="hidden" name="_token" value="{token}">
        <input type="hidden" name="id_tg" value="401">
        <textarea name="isi"></textarea>
    </form>
</div>
</body></html>
"""


def render_answer(
    answer_id: int,
    content: str = "Jawaban saya",
    score: str = "",
    notes: str = "",
    file_href: Optional[str] = None,
) -> str:
    """Render an answer block as shown inside a task."""
    file_link = f'<a class="jawaban-file" href="{file_href}">Berkas</a>' if file_href else ""
    return ANSWER_BLOCK.format(
        answer_id=answer_id, content=content, score=score, notes=notes, file_link=file_link
    )


def render_topic(answer_html: str = "", token: str = CSRF_TOKEN) -> str:
    """Render the topic page with an optional answer block."""
    return TOPIC_PAGE.format(answer=answer_html, token=token)


@pytest.fixture
def dashboard_html() -> str:
    return DASHBOARD_PAGE


@pytest.fixture
def course_detail_html() -> str:
    return COURSE_DETAIL_PAGE


@pytest.fixture
def topic_html() -> str:
    """Topic page with an unanswered task."""
    return render_topic()


@pytest.fixture
def graded_topic_html() -> str:
    """Topic page whose task has a graded answer."""
    return render_topic(
        render_answer(
            77,
            content="Flowchart terlampir",
            score="85,5",
            notes="Bagus",
            file_href="/storage/jawaban/77/flowchart.pdf",
        )
    )


@pytest.fixture
def sample_course():
    from spotifier.shared.schemas import Course

    return Course(
        id=101,
        code="KOM101",
        name="Algoritma dan Pemrograman",
        credits=3,
        lecturer="Dr. Siti Aminah",
        academic_year="2025/2026 - Ganjil",
        href="/mhs/dashboard/101",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Fake Portal
# ─────────────────────────────────────────────────────────────────────────────


def make_response(url: str, body: str = "", status: int = 200) -> requests.Response:
    """Build a real Response object as if redirects had already been followed."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    return response


class FakePortal:
    """
    In-process stand-in for sso.upi.edu + spot.upi.edu.

    Quacks like a requests.Session: the dispatcher calls request() and
    reads headers/cookies. Redirects are resolved internally, so each
    response carries its final URL.
    """

    def __init__(self, session_valid: bool = False) -> None:
        self.headers: dict[str, str] = {}
        self.cookies = RequestsCookieJar()
        self.calls: list[dict] = []
        self.answers: dict[int, dict] = {}
        self.next_answer_id = 900
        self.valid_periods = {"20241", "20242", "20251", "20252"}
        self.active_period = "20251"
        self.period_response: Optional[tuple[int, str]] = None
        self.login_page = LOGIN_PAGE
        # Whether the server still honours the "sess-value" session cookie
        self.session_valid = session_valid
        self.closed = False

    # Session interface

    def request(self, method, url, headers=None, timeout=None, data=None, files=None, **kwargs):
        self.calls.append(
            {"method": method, "url": url, "headers": dict(headers or {}), "data": data, "files": files}
        )
        parsed = urlparse(url)
        if parsed.hostname == "sso.upi.edu":
            return self._sso(method, url, data)
        return self._portal(method, parsed.path, data, files)

    def close(self) -> None:
        self.closed = True

    # Helpers

    @property
    def logged_in(self) -> bool:
        return self.session_valid and any(
            cookie.name == "laravel_session" and cookie.value == "sess-value"
            for cookie in self.cookies
        )

    def expire_session(self) -> None:
        """Invalidate the session server-side, as a timeout would."""
        self.session_valid = False
        self.cookies.clear()

    # SSO

    def _sso(self, method, url, data):
        if method == "GET":
            return make_response(LOGIN_URL, self.login_page)

        data = data or {}
        if (
            data.get("username") == VALID_NIM
            and data.get("password") == VALID_PASSWORD
            and data.get("execution") == "e1s1"
            and data.get("_eventId") == "submit"
        ):
            self.cookies.set("TGC", "tgc-value", domain="sso.upi.edu", path="/")
            self.cookies.set("laravel_session", "sess-value", domain="spot.upi.edu", path="/")
            self.cookies.set("XSRF-TOKEN", "xsrf-value", domain="spot.upi.edu", path="/")
            self.session_valid = True
            return make_response(f"{BASE_URL}/beranda", "<html><body>Beranda</body></html>")

        return make_response(LOGIN_URL, LOGIN_FAILED_PAGE)

    # Portal

    def _portal(self, method, path, data, files):
        if not self.logged_in:
            # Unauthenticated requests bounce to the SSO login page
            return make_response(LOGIN_URL, self.login_page)

        if path == "/mhs":
            return make_response(f"{BASE_URL}/mhs", DASHBOARD_PAGE)

        match = re.fullmatch(r"/mhs/(?:dashboard|kelas)/(\d+)", path)
        if match:
            if match.group(1) != "101":
                return make_response(f"{BASE_URL}{path}", "Not Found", 404)
            return make_response(f"{BASE_URL}{path}", COURSE_DETAIL_PAGE)

        match = re.fullmatch(r"/mhs/topik/(\d+)/(\d+)", path)
        if match:
            return make_response(f"{BASE_URL}{path}", self._render_topic())

        if path == "/mhs/tugas_store" and method == "POST":
            return self._store_answer(data, files)

        match = re.fullmatch(r"/mhs/tugas_del/(\d+)/(\d+)/(\d+)", path)
        if match:
            answer_id = int(match.group(3))
            if self.answers.pop(answer_id, None) is None:
                return make_response(f"{BASE_URL}{path}", "Not Found", 404)
            return make_response(f"{BASE_URL}/mhs/topik/{match.group(1)}/{match.group(2)}", self._render_topic())

        match = re.fullmatch(r"/adm/semester/(\w+)", path)
        if match:
            if self.period_response is not None:
                status, final_path = self.period_response
                return make_response(f"{BASE_URL}{final_path}", "", status)
            code = match.group(1)
            if code not in self.valid_periods:
                return make_response(f"{BASE_URL}{path}", "Server Error", 500)
            self.active_period = code
            return make_response(f"{BASE_URL}/adm", "<html><body>Admin</body></html>")

        return make_response(f"{BASE_URL}{path}", "Not Found", 404)

    def _render_topic(self) -> str:
        blocks = [
            render_answer(answer_id, content=answer["content"], file_href=answer["file_href"])
            for answer_id, answer in self.answers.items()
        ]
        return render_topic("".join(blocks))

    def _store_answer(self, data, files):
        fields = dict(data or {})
        upload = None
        for name, part in (files or {}).items():
            if part[0] is None:
                fields[name] = part[1]
            else:
                upload = (name, part)

        if fields.get("_token") != CSRF_TOKEN:
            return make_response(f"{BASE_URL}/mhs/tugas_store", "Page Expired", 419)
        if fields.get("id_tg") != "401":
            return make_response(f"{BASE_URL}/mhs/tugas_store", "Unprocessable", 422)

        answer_id = self.next_answer_id
        self.next_answer_id += 1
        self.answers[answer_id] = {
            "content": fields.get("isi", ""),
            "fields": fields,
            "file_href": f"/storage/jawaban/{answer_id}/{upload[1][0]}" if upload else None,
            "upload": upload,
        }
        return make_response(f"{BASE_URL}/mhs/topik/{fields['id_pn']}/{fields['id_pt']}", self._render_topic())


@pytest.fixture
def fake_portal() -> FakePortal:
    return FakePortal()


# ─────────────────────────────────────────────────────────────────────────────
# Client Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def test_settings(temp_dir: Path):
    """Settings that keep every path inside a temporary directory."""
    from spotifier.shared.config import Settings

    return Settings(
        cache={"enabled": False},
        paths={
            "data_dir": str(temp_dir / "data"),
            "cache_dir": str(temp_dir / "cache"),
            "session_file": str(temp_dir / "session.json"),
            "diagnostics_dir": str(temp_dir / "diagnostics"),
        },
    )


@pytest.fixture
def memory_cache():
    from spotifier.cache.memory_cache import MemoryCache

    return MemoryCache()


@pytest.fixture
def client(test_settings, fake_portal: FakePortal, memory_cache):
    """Unauthenticated client with pacing disabled."""
    from spotifier.client import SpotifierClient
    from spotifier.shared.schemas import DelayConfig

    with SpotifierClient(
        settings=test_settings,
        delay_config=DelayConfig.disabled(),
        cache=memory_cache,
        session=fake_portal,
    ) as spot:
        yield spot


@pytest.fixture
def logged_in_client(client):
    client.login(VALID_NIM, VALID_PASSWORD)
    return client


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset the settings singleton between tests."""
    from spotifier.shared.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
