"""Filtering, derived statistics and backend orchestration for the console."""

from __future__ import annotations

import csv
import io
import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable

from django.conf import settings

from . import api, scoring

logger = logging.getLogger(__name__)

__all__ = [
    "CATEGORIES",
    "PROGRAM_STATUSES",
    "RESULT_STATUSES",
    "lookup",
    "filter_records",
    "schedule_by_date",
    "result_status_counts",
    "curb_utilization",
    "file_type_family",
    "human_size",
    "leaderboard",
    "student_stats",
    "team_stats",
    "leaderboard_stats",
    "category_stats",
    "parse_student_csv",
    "import_students",
    "fetch_dashboard_counts",
    "results_editable",
    "submit_score_sheet",
]


CATEGORIES = ("Bidaya", "Ula", "Thaniyya", "Thanawiyya", "Aliya", "Kulliyya")
PROGRAM_STATUSES = ("Draft", "Pending", "Scheduled", "Cancelled", "Completed")
RESULT_STATUSES = ("pending", "processing", "completed", "archived", "published")
# Results can still be judged while the program is in one of these states.
EDITABLE_RESULT_STATUSES = ("pending", "processing", "completed")
# What a submitted score sheet may move the program to.
SHEET_RESULT_STATUSES = ("processing", "completed")
POSITION_CATEGORIES = ("First", "Second", "Third")
GRADE_COLORS = ("green", "blue", "yellow", "orange", "red", "purple")
FILE_FAMILIES = ("image", "video", "pdf", "archive", "document", "other")

ANY = ("", "all", None)


def lookup(record, path: str):
    """Read a dotted path (``team.name``) from nested dicts."""

    value = record
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return str(value.get("name") or value.get("_id") or "")
    return str(value)


def _match_keys(value) -> set[str]:
    if isinstance(value, dict):
        return {str(value[key]) for key in ("_id", "id", "name") if value.get(key) is not None}
    if value is None:
        return set()
    return {str(value)}


def filter_records(
    records: Iterable[dict],
    *,
    query: str | None = None,
    fields: Iterable[str] = ("name",),
    **equals,
) -> list[dict]:
    """
    Case-insensitive substring search over ``fields`` combined (AND) with
    exact-match dropdown filters. ``equals`` keys use ``__`` for nesting
    (``team__name`` reads ``team.name``); blank or ``all`` values are ignored.
    A reference filter (``team=<id>``) matches a populated record by its id
    or name and a bare reference by its value.
    """

    needle = (query or "").strip().lower()
    fields = tuple(fields)
    active = {
        key.replace("__", "."): value
        for key, value in equals.items()
        if value not in ANY
    }
    out: list[dict] = []
    for record in records or []:
        if not isinstance(record, dict):
            continue
        if needle and not any(needle in _text(lookup(record, name)).lower() for name in fields):
            continue
        matched = True
        for path, expected in active.items():
            actual = lookup(record, path)
            if isinstance(expected, bool):
                if bool(actual) is not expected:
                    matched = False
                    break
            elif str(expected) not in _match_keys(actual):
                matched = False
                break
        if matched:
            out.append(record)
    return out


def schedule_by_date(programs: Iterable[dict]) -> list[tuple[str, list[dict]]]:
    """Group programs by date (ascending); each day sorted by starting time."""

    grouped: dict[str, list[dict]] = {}
    for program in programs or []:
        date = (program.get("date") or "")[:10]
        grouped.setdefault(date, []).append(program)
    days = []
    for date in sorted(grouped, key=lambda value: (value == "", value)):
        day = sorted(grouped[date], key=lambda item: item.get("startingTime") or "")
        days.append((date, day))
    return days


def result_status_counts(programs: Iterable[dict]) -> dict[str, int]:
    counts = {status: 0 for status in RESULT_STATUSES}
    for program in programs or []:
        status = (program.get("resultStatus") or "pending").lower()
        counts[status] = counts.get(status, 0) + 1
    return counts


@dataclass(frozen=True)
class CurbUsage:
    count: int
    maximum: int
    percent: int
    level: str

    @property
    def is_full(self) -> bool:
        return self.maximum > 0 and self.count >= self.maximum


def curb_utilization(curb: dict) -> CurbUsage:
    """How full a curb is; ``full`` at the cap, ``high`` from 80%."""

    programs = curb.get("programs") or curb.get("programsId") or []
    count = len(programs)
    try:
        maximum = int(curb.get("maxCountOfProg") or 0)
    except (TypeError, ValueError):
        maximum = 0
    percent = round(count * 100 / maximum) if maximum else 0
    if maximum and count >= maximum:
        level = "full"
    elif maximum and count >= maximum * 0.8:
        level = "high"
    else:
        level = "normal"
    return CurbUsage(count=count, maximum=maximum, percent=min(percent, 100), level=level)


def file_type_family(file_type: str | None) -> str:
    kind = (file_type or "").lower()
    if kind.startswith("image/"):
        return "image"
    if kind.startswith("video/"):
        return "video"
    if "pdf" in kind:
        return "pdf"
    if "zip" in kind or "rar" in kind:
        return "archive"
    if "doc" in kind or "sheet" in kind or "presentation" in kind:
        return "document"
    return "other"


def human_size(size) -> str:
    try:
        value = float(size or 0)
    except (TypeError, ValueError):
        return "0 Bytes"
    if value <= 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[index]}"


def _plain_points(value) -> float:
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, dict):
        return value.get("published") or 0
    return 0


def leaderboard(teams: Iterable[dict], category: str | None = None) -> list[dict]:
    """
    Rank teams by total points (published). With a category, teams without
    points there are dropped and the rest ordered by that category.
    """

    board: list[dict] = []
    for team in teams or []:
        if category in ANY:
            points = _plain_points(team.get("totalPoint"))
        else:
            points = _plain_points((team.get("categoriesPoint") or {}).get(category))
            if not points:
                continue
        board.append({"team": team, "points": points})
    board.sort(key=lambda item: item["points"], reverse=True)
    for index, item in enumerate(board, start=1):
        item["rank"] = index
    return board


@dataclass(frozen=True)
class StatCard:
    title: str
    value: object
    note: str = ""


def _top(records: list[dict], points) -> dict | None:
    # strictly greater, so a field of zeros has no leader
    best = None
    for record in records:
        if points(record) > (points(best) if best is not None else 0):
            best = record
    return best


def student_stats(students: Iterable[dict]) -> list[StatCard]:
    students = [s for s in students or [] if isinstance(s, dict)]

    def points(student):
        return _plain_points(student.get("totalPoint"))

    top = _top(students, points)
    return [
        StatCard("Total Students", len(students), "Registered in the system"),
        StatCard("Top Performer", top.get("name") if top else "N/A", f"{points(top)} points" if top else "No data"),
        StatCard("Total Points", sum(points(s) for s in students), "Across all students"),
    ]


def team_stats(teams: Iterable[dict]) -> list[StatCard]:
    teams = [t for t in teams or [] if isinstance(t, dict)]

    def points(team):
        return _plain_points(team.get("totalPoint"))

    top = _top(teams, points)
    return [
        StatCard("Total Teams", len(teams)),
        StatCard("Top Team", top.get("name") if top else "N/A", f"{points(top)} points" if top else ""),
        StatCard("Total Points", sum(points(t) for t in teams), "Published results"),
    ]


def leaderboard_stats(teams: Iterable[dict], board: list[dict]) -> list[StatCard]:
    """Overview cards above the leaderboard; ``board`` is what :func:`leaderboard` returned."""

    teams = [t for t in teams or [] if isinstance(t, dict)]
    total = sum(_plain_points(t.get("totalPoint")) for t in teams)
    leader = board[0] if board else None
    return [
        StatCard("Total Teams", len(teams)),
        StatCard(
            "Leading Team",
            leader["team"].get("name") if leader else "N/A",
            f"{leader['points'] if leader else 0} points",
        ),
        StatCard("Total Points", total),
        StatCard("Average Points", round(total / len(teams)) if teams else 0),
    ]


def category_stats(categories: Iterable[dict]) -> list[StatCard]:
    categories = [c for c in categories or [] if isinstance(c, dict)]

    def students(category):
        return category.get("studentCount") or 0

    busiest = max(categories, key=students) if categories else None
    return [
        StatCard("Total Categories", len(categories)),
        StatCard("Total Students", sum(students(c) for c in categories)),
        StatCard("Total Programs", sum(c.get("programCount") or 0 for c in categories)),
        StatCard("Most Popular", busiest.get("name") if busiest else "N/A"),
    ]


# ---------- student CSV import ----------

STUDENT_CSV_HEADERS = ("Name", "Chest Number", "Class", "Category", "Team Name")
STUDENT_CSV_TEMPLATE = (
    "Name,Chest Number,Class,Category,Team Name\n"
    "Ahmed Ali,A001,10th Grade,Thanawiyya,Red Team\n"
    "Fatima Hassan,B002,12th Grade,Aliya,Blue Team\n"
    "Omar Ibrahim,C003,8th Grade,Ula,Green Team\n"
)


@dataclass
class ImportRow:
    line: int
    name: str
    chest_no: str
    student_class: str
    category: str
    team_name: str
    team_id: str = ""
    status: str = "pending"
    error: str = ""

    def payload(self) -> dict[str, str]:
        return {
            "name": self.name,
            "chestNo": self.chest_no,
            "class": self.student_class,
            "category": self.category,
            "team": self.team_id,
        }


@dataclass
class ImportSummary:
    rows: list[ImportRow] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def valid_rows(self) -> list[ImportRow]:
        return [row for row in self.rows if row.status != "error"]

    @property
    def imported(self) -> int:
        return sum(1 for row in self.rows if row.status == "success")

    @property
    def failed(self) -> int:
        return sum(1 for row in self.rows if row.status == "error")


def parse_student_csv(text: str, teams: Iterable[dict]) -> ImportSummary:
    """Parse and validate a student CSV against the known teams."""

    summary = ImportSummary()
    reader = csv.reader(io.StringIO(text))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if not rows:
        summary.errors.append("The CSV file is empty.")
        return summary

    headers = [cell.strip().lstrip("\ufeff").lower() for cell in rows[0]]
    if headers[: len(STUDENT_CSV_HEADERS)] != [expected.lower() for expected in STUDENT_CSV_HEADERS]:
        summary.errors.append("Invalid CSV format. Please use the provided template.")
        return summary

    teams_by_name = {
        (team.get("name") or "").strip().lower(): team
        for team in teams or []
        if isinstance(team, dict)
    }
    for line, values in enumerate(rows[1:], start=2):
        values = [value.strip() for value in values]
        if len(values) < 5:
            continue
        name, chest_no, student_class, category, team_name = values[:5]
        team = teams_by_name.get(team_name.lower())
        row = ImportRow(
            line=line,
            name=name,
            chest_no=chest_no,
            student_class=student_class,
            category=category,
            team_name=team_name,
            team_id=api.record_id(team),
        )
        if not all((name, chest_no, student_class, category, team_name)):
            row.status, row.error = "error", "Missing required fields"
            summary.errors.append(f"Row {line}: Missing required fields")
        elif category not in CATEGORIES:
            row.status, row.error = "error", "Invalid category"
            summary.errors.append(f'Row {line}: Invalid category "{category}"')
        elif team is None:
            row.status, row.error = "error", "Team not found"
            summary.errors.append(f'Row {line}: Team "{team_name}" not found')
        summary.rows.append(row)
    return summary


def import_students(client: api.ApiClient, summary: ImportSummary) -> ImportSummary:
    """POST each valid row; a rejected row records the server message and the rest continue."""

    for row in summary.valid_rows:
        try:
            client.post("/students", row.payload())
        except api.ApiError as e:
            if e.is_unauthorized:
                raise
            row.status = "error"
            row.error = e.user_message("Import failed")
        else:
            row.status = "success"
    logger.info("student import: %s imported, %s failed", summary.imported, summary.failed)
    return summary


# ---------- dashboard ----------

DASHBOARD_COLLECTIONS: "OrderedDict[str, tuple[str, str, str]]" = OrderedDict(
    [
        ("users", ("/users", "Total Users", "Registered admin users")),
        ("students", ("/students", "Total Students", "Registered participants")),
        ("programs", ("/programs", "Programs", "Competition programs")),
        ("events", ("/events", "Events", "Scheduled events")),
        ("categories", ("/categories", "Categories", "Program categories")),
        ("news", ("/news", "News Articles", "Published articles")),
        ("gallery", ("/gallery", "Gallery Items", "Media files")),
        ("downloads", ("/downloads", "Downloads", "Downloadable files")),
    ]
)


def _count(client: api.ApiClient, path: str) -> int | None:
    try:
        return len(client.collection(path))
    except api.ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning("dashboard count for %s failed: %s", path, e)
        return None


def fetch_dashboard_counts(client: api.ApiClient) -> dict[str, int | None]:
    """
    Fetch every dashboard collection concurrently. Each fetch settles on its
    own: a failure yields ``None`` for that card only. A rejected token is
    re-raised once every fetch has settled.
    """

    workers = max(1, min(settings.ARTFEST_DASHBOARD_WORKERS, len(DASHBOARD_COLLECTIONS)))
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futures = {
            key: ex.submit(_count, client, path)
            for key, (path, _title, _description) in DASHBOARD_COLLECTIONS.items()
        }
        return {key: future.result() for key, future in futures.items()}


# ---------- judgment submission ----------

def results_editable(program: dict | None) -> bool:
    """False once a program's results are published or archived."""
    status = ((program or {}).get("resultStatus") or "pending").lower()
    return status in EDITABLE_RESULT_STATUSES


@dataclass
class SubmissionReport:
    written: int = 0
    failed_row: scoring.ScoreRow | None = None
    error: api.ApiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def submit_score_sheet(
    client: api.ApiClient,
    program_id: str,
    rows: list[scoring.ScoreRow],
    result_status: str,
) -> SubmissionReport:
    """
    Persist a judged sheet row by row: the judgment (PATCH when it already
    exists, POST otherwise), then the participation's awarded position and
    grade, and finally the program's result status. Stops at the first
    failure; rows already written stay written.
    """

    report = SubmissionReport()
    for row in rows:
        try:
            body = scoring.judgment_payload(row)
            if row.judgment_id:
                client.patch(f"/judgments/{row.judgment_id}", body)
            else:
                created = api.extract_record(client.post("/judgments", body))
                row.judgment_id = api.record_id(created)
            client.patch(
                f"/participations/result/{row.participation_id}",
                {
                    "resultStatus": result_status,
                    "position": api.record_id(row.position) or None,
                    "grade": api.record_id(row.grade) or None,
                },
            )
        except api.ApiError as e:
            report.failed_row = row
            report.error = e
            return report
        report.written += 1

    try:
        client.patch(f"/programs/{program_id}", {"resultStatus": result_status})
    except api.ApiError as e:
        report.error = e
    return report
