from __future__ import annotations

import json
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from school import HOME_TIMEZONE, DatasetError, KeyDate, SchoolCalendar, Term

DEFAULT_CONFIG_PATH = Path(__file__).with_name("config.yaml")
DEFAULT_PORT = 8080

DEFAULTS: dict[str, object] = {
    "data_dir": "data",
    "terms_file": "terms.json",
    "holidays_file": "holidays.json",
    "key_dates_file": "key-dates.json",
    "timezone": HOME_TIMEZONE,
    "host": "0.0.0.0",
    "port": DEFAULT_PORT,
    "static_dir": "static",
}


def load_config(path: Path) -> dict[str, object]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise DatasetError(f"Invalid config file {path}: {exc}") from exc
    return data if isinstance(data, dict) else {}


def resolve_config_path(value: object, base_dir: Path) -> Path | None:
    if value is None:
        return None
    path = Path(str(value))
    return path if path.is_absolute() else base_dir / path


def resolve_settings(
    config: dict[str, object],
    base_dir: Path,
    data_dir: Path | None = None,
    host: str | None = None,
    port: int | None = None,
) -> dict[str, object]:
    """Merge command line values, the PORT variable, the config file and defaults."""
    settings = {**DEFAULTS, **config}
    env_port = os.environ.get("PORT")
    if port is None and env_port:
        port = int(env_port)
    settings["data_dir"] = data_dir or resolve_config_path(settings["data_dir"], base_dir)
    settings["static_dir"] = resolve_config_path(settings["static_dir"], base_dir)
    settings["host"] = host or str(settings["host"])
    settings["port"] = port if port is not None else int(settings["port"])
    return settings


def load_json(path: Path) -> object:
    if not path.exists():
        raise DatasetError(f"Dataset file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DatasetError(f"Invalid JSON in {path}: {exc}") from exc


def parse_terms(payload: object) -> dict[str, tuple[Term, ...]]:
    if not isinstance(payload, dict):
        raise DatasetError("terms must map a year to a list of {start,end}")
    terms: dict[str, tuple[Term, ...]] = {}
    for year, entries in payload.items():
        if not isinstance(entries, list):
            raise DatasetError(f"terms for {year} must be a list")
        items: list[Term] = []
        for entry in entries:
            if not isinstance(entry, dict) or "start" not in entry or "end" not in entry:
                raise DatasetError(f"term in {year} must have start and end: {entry!r}")
            items.append(Term(start=str(entry["start"]), end=str(entry["end"])))
        terms[str(year)] = tuple(items)
    return terms


def parse_key_dates(payload: object, label: str) -> tuple[KeyDate, ...]:
    if not isinstance(payload, list):
        raise DatasetError(f"{label} must be a list of {{name,date}}")
    items: list[KeyDate] = []
    for entry in payload:
        if not isinstance(entry, dict) or "name" not in entry or "date" not in entry:
            raise DatasetError(f"{label} entry must have name and date: {entry!r}")
        division = entry.get("division")
        items.append(
            KeyDate(
                name=str(entry["name"]),
                date=str(entry["date"]),
                division=str(division) if division else None,
            )
        )
    return tuple(items)


def load_timezone(name: object) -> ZoneInfo:
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise DatasetError(f"Unknown timezone: {name}") from exc


def load_calendar(settings: dict[str, object]) -> SchoolCalendar:
    data_dir = Path(str(settings["data_dir"]))
    return SchoolCalendar(
        terms=parse_terms(load_json(data_dir / str(settings["terms_file"]))),
        holidays=parse_key_dates(load_json(data_dir / str(settings["holidays_file"])), "holidays"),
        key_dates=parse_key_dates(load_json(data_dir / str(settings["key_dates_file"])), "key dates"),
        timezone=load_timezone(settings["timezone"]),
    )
