"""
tests/test_school_api.py

Covers:
  - Response envelopes for summary, terms and events
  - JSON 404s under /api and OPTIONS pre-flight
  - CORS headers
  - Aborted computations surfacing as a generic failure
  - The landing page (static file or rendered README)
"""

import pytest

from conftest import TZ, at
from school import KeyDate, SchoolCalendar, Term
from school_api import FAILURE_MESSAGE, create_app


@pytest.fixture
def readme(tmp_path):
    path = tmp_path / "README.md"
    path.write_text("# School Calendar\n\nTerm statistics.\n", encoding="utf-8")
    return path


@pytest.fixture
def client(calendar, readme):
    app = create_app(calendar, readme_path=readme, clock=lambda: at(2024, 8, 15, 12))
    return app.test_client()


# ── Endpoints ─────────────────────────────────────────────────────────────────

class TestEndpoints:

    def test_summary(self, client):
        response = client.get("/api/v1/2024/summary")
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "ok"
        assert body["details"]["schoolDaysTotal"] == 193
        assert body["details"]["schoolDaysRemaining"] == 175
        assert body["details"]["currentTerm"] == 3
        assert body["details"]["term"]["daysRemaining"] == 31

    def test_summary_for_missing_year(self, client):
        body = client.get("/api/v1/1999/summary").get_json()
        assert body == {
            "status": "ok",
            "details": {
                "schoolDaysTotal": 0,
                "schoolDaysRemaining": 0,
                "currentTerm": "Holidays",
                "term": None,
            },
        }

    def test_terms(self, client):
        body = client.get("/api/v1/2024/terms").get_json()
        assert body["status"] == "ok"
        assert [t["schoolDays"] for t in body["details"]] == [49, 47, 49, 48]
        assert "daysRemaining" not in body["details"][2]

    def test_terms_for_missing_year(self, client):
        assert client.get("/api/v1/1999/terms").get_json()["details"] == []

    def test_events(self, client):
        body = client.get("/api/v1/events").get_json()
        assert body["status"] == "ok"
        assert body["details"][0] == {"name": "Term 3 Ends", "date": "27 September 2024"}
        assert {"name": "NCEA exams begin", "date": "7 November", "division": "Senior"} in body["details"]


# ── Errors, pre-flight and CORS ───────────────────────────────────────────────

class TestErrors:

    def test_unknown_api_path_is_json_404(self, client):
        response = client.get("/api/v2/everything")
        assert response.status_code == 404
        assert response.get_json() == {"status": "err", "message": "Not Found"}

    def test_options_preflight(self, client):
        response = client.options("/api/v1/whatever")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok", "details": {}}

    def test_options_on_known_route(self, client):
        assert client.options("/api/v1/2024/summary").status_code == 200

    def test_cors_headers(self, client):
        response = client.get("/api/v1/events", headers={"Origin": "https://school.example"})
        assert response.headers["Access-Control-Allow-Origin"] in ("https://school.example", "*")
        assert response.headers["Access-Control-Allow-Credentials"] == "true"

    def test_malformed_date_is_generic_failure(self, readme):
        calendar = SchoolCalendar(
            terms={"2024": [Term("3 February", "12 April")]},
            holidays=[KeyDate("Broken", "6 Febtober")],
            timezone=TZ,
        )
        app = create_app(calendar, readme_path=readme, clock=lambda: at(2024, 8, 15))
        client = app.test_client()
        for path in ("/api/v1/2024/summary", "/api/v1/2024/terms", "/api/v1/events"):
            response = client.get(path)
            assert response.status_code == 500
            assert response.get_json() == {"status": "err", "message": FAILURE_MESSAGE}


# ── Landing page ──────────────────────────────────────────────────────────────

class TestIndex:

    def test_renders_readme(self, client):
        response = client.get("/")
        assert response.status_code == 200
        html = response.get_data(as_text=True)
        assert "<h1>School Calendar</h1>" in html
        assert "/api/v1/events" in html

    def test_serves_static_index(self, calendar, readme, tmp_path):
        static = tmp_path / "static"
        static.mkdir()
        (static / "index.html").write_text("<p>custom page</p>", encoding="utf-8")
        app = create_app(calendar, static_dir=static, readme_path=readme)
        response = app.test_client().get("/")
        assert response.get_data(as_text=True) == "<p>custom page</p>"
        response.close()

    def test_missing_readme_still_renders(self, calendar, tmp_path):
        app = create_app(calendar, readme_path=tmp_path / "missing.md")
        assert app.test_client().get("/").status_code == 200
