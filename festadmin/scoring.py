"""
Scoring helpers for the judgment sheet and printed results.

The caps in ``RUBRIC`` are a festival policy constant, not a backend rule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable

__all__ = [
    "RUBRIC",
    "RUBRIC_MAX",
    "LETTER_BANDS",
    "ScoreRow",
    "letter_grade",
    "parse_score",
    "assign_ranks",
    "grade_for_percentage",
    "position_for_rank",
    "build_score_rows",
    "evaluate_score_sheet",
    "judgment_payload",
    "printed_result_key",
    "sort_printed_participations",
    "status_points",
    "team_total",
    "team_category_total",
    "rank_teams",
]


@dataclass(frozen=True)
class RubricCriterion:
    key: str
    label: str
    max_points: int
    wire_field: str


# Festival scoring policy: five judged criteria whose caps add up to 100, so a
# sheet total reads directly as the percentage matched against Grade ranges.
# The backend stores the criteria as point1..point5 and does not enforce caps;
# changing the policy means editing only this table.
RUBRIC: tuple[RubricCriterion, ...] = (
    RubricCriterion("performance", "Performance", 40, "point1"),
    RubricCriterion("presentation", "Presentation", 20, "point2"),
    RubricCriterion("creativity", "Creativity", 20, "point3"),
    RubricCriterion("technique", "Technique", 10, "point4"),
    RubricCriterion("time_management", "Time management", 10, "point5"),
)
RUBRIC_MAX = sum(criterion.max_points for criterion in RUBRIC)

# Display-only bands; the administrator's Grade table decides awarded grades.
LETTER_BANDS: tuple[tuple[int, str], ...] = (
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C"),
)

MISSING_RANK = 9999


def letter_grade(total: int | float | Decimal) -> str:
    """Map a 0-100 total onto the illustrative letter bands."""

    for threshold, label in LETTER_BANDS:
        if total >= threshold:
            return label
    return "F"


def parse_score(value) -> Decimal:
    """Coerce a sub-score to Decimal; blanks and junk count as zero."""

    if value in (None, ""):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip() or "0")
    except InvalidOperation:
        return Decimal("0")


def _number(value: Decimal) -> int | float:
    return int(value) if value == value.to_integral_value() else float(value)


@dataclass
class ScoreRow:
    """One participation on the judgment sheet."""

    participation: dict
    judgment_id: str = ""
    scores: dict[str, Decimal] = field(default_factory=dict)
    remarks: str = ""
    rank: int | None = None
    grade: dict | None = None
    position: dict | None = None

    @property
    def participation_id(self) -> str:
        return str(self.participation.get("_id") or self.participation.get("id") or "")

    @property
    def candidates(self) -> list[dict]:
        raw = self.participation.get("candidateId") or self.participation.get("candidates") or []
        if isinstance(raw, dict):
            raw = [raw]
        return [candidate for candidate in raw if isinstance(candidate, dict)]

    @property
    def chest_no(self) -> str:
        candidates = self.candidates
        return str(candidates[0].get("chestNo", "")) if candidates else ""

    @property
    def candidate_label(self) -> str:
        candidates = self.candidates
        if not candidates:
            return "-"
        name = candidates[0].get("name") or "-"
        return f"{name} & Team" if len(candidates) > 1 else name

    @property
    def total(self) -> Decimal:
        return sum((self.scores.get(criterion.key, Decimal("0")) for criterion in RUBRIC), Decimal("0"))

    @property
    def percentage(self) -> Decimal:
        return (self.total * Decimal(100) / Decimal(RUBRIC_MAX)).quantize(Decimal("0.01"))

    @property
    def letter(self) -> str:
        return letter_grade(self.percentage)


def assign_ranks(totals: Iterable[Decimal | int | float]) -> list[int]:
    """
    Competition ranking by descending total: equal totals share a rank and
    the next distinct total skips the shared places (1, 1, 3).
    """

    values = list(totals)
    order = sorted(range(len(values)), key=lambda idx: values[idx], reverse=True)
    ranks = [0] * len(values)
    for place, idx in enumerate(order):
        if place and values[idx] == values[order[place - 1]]:
            ranks[idx] = ranks[order[place - 1]]
        else:
            ranks[idx] = place + 1
    return ranks


def grade_for_percentage(grades: Iterable[dict], percentage: Decimal | float) -> dict | None:
    """Return the first active grade whose ``from``/``to`` bounds hold the percentage."""

    for grade in grades or []:
        if not isinstance(grade, dict) or grade.get("isActive") is False:
            continue
        lower = parse_score(grade.get("from"))
        upper = parse_score(grade.get("to"))
        if lower <= Decimal(str(percentage)) <= upper:
            return grade
    return None


def position_for_rank(positions: Iterable[dict], rank: int | None) -> dict | None:
    if rank is None:
        return None
    for position in positions or []:
        if not isinstance(position, dict) or position.get("isActive") is False:
            continue
        try:
            if int(position.get("rank")) == rank:
                return position
        except (TypeError, ValueError):
            continue
    return None


def build_score_rows(items: Iterable[dict]) -> list[ScoreRow]:
    """
    Build sheet rows from ``with_participation_and_judgments`` items, each
    ``{"participation": {...}, "judgment": {...} | None}``.
    """

    rows: list[ScoreRow] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        participation = item.get("participation") or {}
        judgment = item.get("judgment") or {}
        scores = {
            criterion.key: parse_score(judgment.get(criterion.wire_field))
            for criterion in RUBRIC
        }
        rows.append(
            ScoreRow(
                participation=participation,
                judgment_id=str(judgment.get("_id") or ""),
                scores=scores,
                remarks=judgment.get("remarks") or "",
            )
        )
    return rows


def evaluate_score_sheet(rows: list[ScoreRow], grades: Iterable[dict], positions: Iterable[dict]) -> list[ScoreRow]:
    """Fill in rank, awarded grade and awarded position on every row."""

    grades = list(grades or [])
    positions = list(positions or [])
    ranks = assign_ranks([row.total for row in rows])
    for row, rank in zip(rows, ranks):
        row.rank = rank
        row.grade = grade_for_percentage(grades, row.percentage)
        row.position = position_for_rank(positions, rank)
    return rows


def judgment_payload(row: ScoreRow) -> dict:
    payload: dict[str, object] = {
        "participation": row.participation_id,
        "remarks": row.remarks,
    }
    for criterion in RUBRIC:
        payload[criterion.wire_field] = _number(row.scores.get(criterion.key, Decimal("0")))
    return payload


def printed_result_key(participation: dict) -> tuple[int, str]:
    """Rank ascending (missing ranks last), then grade category ascending."""

    position = participation.get("position") or {}
    grade = participation.get("grade") or {}
    rank = position.get("rank") if isinstance(position, dict) else None
    try:
        rank_value = int(rank) if rank is not None else MISSING_RANK
    except (TypeError, ValueError):
        rank_value = MISSING_RANK
    category = grade.get("category") if isinstance(grade, dict) else None
    return rank_value, category or ""


def sort_printed_participations(participations: Iterable[dict]) -> list[dict]:
    return sorted(participations or [], key=printed_result_key)


def status_points(buckets, status: str) -> int | float:
    """
    Points from a per-status bucket dict. ``all`` sums the completed,
    archived and published buckets; any other status adds its own bucket to
    the published one.
    """

    if isinstance(buckets, (int, float)):
        return buckets
    if not isinstance(buckets, dict):
        return 0
    if status == "all":
        return sum(buckets.get(key) or 0 for key in ("completed", "archived", "published"))
    points = buckets.get(status) or 0
    if status != "published":
        points += buckets.get("published") or 0
    return points


def team_total(team: dict, status: str) -> int | float:
    return status_points(team.get("totalPoint"), status)


def team_category_total(team: dict, category: str, status: str) -> int | float:
    categories = team.get("categoriesPoint") or {}
    return status_points(categories.get(category), status) if isinstance(categories, dict) else 0


def rank_teams(teams: Iterable[dict], status: str) -> list[dict]:
    """Teams ordered by points for ``status``, highest first."""

    return sorted(teams or [], key=lambda team: team_total(team, status), reverse=True)
