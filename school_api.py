from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable

import markdown
from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS

from school import (
    CalendarError,
    SchoolCalendar,
    build_report,
    get_events,
    get_summary,
    get_terms,
)
from school_data import DEFAULT_CONFIG_PATH, load_calendar, load_config, resolve_settings

FAILURE_MESSAGE = "Unable to compute school calendar"
README_PATH = Path(__file__).with_name("README.md")


def success_response(data: object, code: int = 200):
    return jsonify({"status": "ok", "details": data}), code


def error_response(message: str, code: int):
    return jsonify({"status": "err", "message": message}), code


def render_readme(readme_path: Path) -> str:
    """Render the README as a standalone landing page."""
    body = ""
    if readme_path.exists():
        md = markdown.Markdown(extensions=["fenced_code", "tables"])
        body = md.convert(readme_path.read_text(encoding="utf-8"))
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>School Calendar API</title>
</head>
<body>
{body}
<ul>
    <li><a href="/api/v1/events">Upcoming events</a></li>
</ul>
</body>
</html>
"""


def create_app(
    calendar: SchoolCalendar,
    static_dir: Path | None = None,
    readme_path: Path = README_PATH,
    clock: Callable[[], datetime] | None = None,
) -> Flask:
    app = Flask(__name__, static_folder=None)
    CORS(app, supports_credentials=True)
    now = clock or calendar.now

    app.logger.info(
        "Loaded %d years of terms, %d holidays, %d key dates",
        len(calendar.terms),
        len(calendar.holidays),
        len(calendar.key_dates),
    )

    @app.errorhandler(CalendarError)
    def calendar_failed(exc: CalendarError):
        app.logger.exception("Calendar computation aborted: %s", exc)
        return error_response(FAILURE_MESSAGE, 500)

    @app.get("/api/v1/<year>/summary")
    def summary(year: str):
        return success_response(get_summary(calendar, year, now()).to_dict())

    @app.get("/api/v1/<year>/terms")
    def terms(year: str):
        return success_response([term.to_dict() for term in get_terms(calendar, year)])

    @app.get("/api/v1/events")
    def events():
        return success_response([event.to_dict() for event in get_events(calendar, now())])

    @app.route(
        "/api/<path:path>",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        provide_automatic_options=False,
    )
    def not_found(path: str):
        if request.method == "OPTIONS":
            return success_response({})
        return error_response("Not Found", 404)

    @app.get("/")
    def index():
        if static_dir is not None and (static_dir / "index.html").exists():
            return send_from_directory(static_dir, "index.html")
        return render_readme(readme_path)

    return app


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Serve school term statistics, or print a report for one year."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="YAML config file (optional)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding terms.json, holidays.json and key-dates.json",
    )
    parser.add_argument("--host", default=None, help="Interface to listen on")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on")
    parser.add_argument(
        "--report",
        nargs="?",
        const="",
        default=None,
        metavar="YEAR",
        help="Print upcoming terms for YEAR (default: this year) and exit",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config) if args.config else {}
        config_base = args.config.parent if args.config else Path.cwd()
        settings = resolve_settings(
            config, config_base, data_dir=args.data_dir, host=args.host, port=args.port
        )
        calendar = load_calendar(settings)
    except CalendarError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    if args.report is not None:
        year = args.report or str(calendar.now().year)
        try:
            report = build_report(calendar, year)
        except CalendarError as exc:
            print(f"ERROR: {exc}")
            sys.exit(1)
        print(json.dumps(report, indent=2))
        return

    app = create_app(calendar, static_dir=settings["static_dir"])
    for rule in app.url_map.iter_rules():
        methods = ",".join(sorted(rule.methods - {"HEAD"}))
        print(f"    - Adding handler for '{methods} {rule.rule}'")
    print(f"Starting server on port {settings['port']}...")
    app.run(host=str(settings["host"]), port=int(settings["port"]))


if __name__ == "__main__":
    main()
