"""Forms for the festadmin console."""
from __future__ import annotations

import re
from decimal import Decimal

from django import forms

from . import api, scoring, services


TEXT_INPUT_CLASSES = "field-input"
CHECKBOX_CLASSES = "field-checkbox"
SCORE_INPUT_CLASSES = "field-input score-input"

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def _choices(records, label: str = "name", blank: str | None = "---------") -> list[tuple[str, str]]:
    options = [("", blank)] if blank is not None else []
    for record in records or []:
        pk = api.record_id(record)
        if pk:
            options.append((pk, str(services.lookup(record, label) or pk)))
    return options


def _plain(values) -> list[tuple[str, str]]:
    return [(value, value) for value in values]


class ConsoleFormMixin:
    """Apply console widget classes and expose a backend payload."""

    def _style_widgets(self) -> None:
        for field in self.fields.values():
            widget = field.widget
            existing = widget.attrs.get("class", "")
            if isinstance(widget, (forms.CheckboxInput, forms.CheckboxSelectMultiple)):
                widget.attrs["class"] = f"{existing} {CHECKBOX_CLASSES}".strip()
            else:
                widget.attrs["class"] = f"{existing} {TEXT_INPUT_CLASSES}".strip()

    def first_error(self, fallback: str = "Please fix the errors in the form") -> str:
        for errors in self.errors.values():
            if errors:
                return errors[0]
        return fallback


class SignInForm(ConsoleFormMixin, forms.Form):
    username = forms.CharField(max_length=150)
    password = forms.CharField(widget=forms.PasswordInput)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._style_widgets()


# ---------- students ----------

class StudentForm(ConsoleFormMixin, forms.Form):
    name = forms.CharField(max_length=120)
    chest_no = forms.CharField(label="Chest No.", max_length=20)
    student_class = forms.CharField(label="Class", max_length=40)
    category = forms.ChoiceField(choices=[("", "Select category")] + _plain(services.CATEGORIES))
    team = forms.ChoiceField(choices=())
    is_active = forms.BooleanField(label="Active", required=False, initial=True)

    def __init__(self, *args, teams=(), record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "name": record.get("name"),
                    "chest_no": record.get("chestNo"),
                    "student_class": record.get("class"),
                    "category": record.get("category"),
                    "team": api.reference_id(record.get("team")),
                    "is_active": record.get("isActive", True),
                },
            )
        super().__init__(*args, **kwargs)
        self.fields["team"].choices = _choices(teams, blank="Select team")
        self._style_widgets()

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "name": data["name"].strip(),
            "chestNo": data["chest_no"].strip(),
            "class": data["student_class"].strip(),
            "category": data["category"],
            "team": data["team"],
            "isActive": data["is_active"],
        }


class StudentImportForm(ConsoleFormMixin, forms.Form):
    csv_file = forms.FileField(label="CSV file")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._style_widgets()

    def clean_csv_file(self):
        upload = self.cleaned_data["csv_file"]
        if not upload.name.lower().endswith(".csv"):
            raise forms.ValidationError("Please upload a CSV file")
        return upload

    def text(self) -> str:
        upload = self.cleaned_data["csv_file"]
        return upload.read().decode("utf-8-sig", errors="replace")


# ---------- teams ----------

class TeamForm(ConsoleFormMixin, forms.Form):
    name = forms.CharField(max_length=100)
    color = forms.CharField(max_length=7, initial="#3b82f6", widget=forms.TextInput(attrs={"type": "color"}))
    leader = forms.ChoiceField(choices=(), required=False)
    asst_leaders = forms.MultipleChoiceField(
        label="Assistant leaders", choices=(), required=False, widget=forms.CheckboxSelectMultiple
    )
    user_id = forms.ChoiceField(label="Login user", choices=(), required=False)

    def __init__(self, *args, students=(), users=(), record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "name": record.get("name"),
                    "color": record.get("color") or "#3b82f6",
                    "leader": api.reference_id(record.get("leader")),
                    "asst_leaders": [api.reference_id(item) for item in record.get("asstLeaders") or []],
                    "user_id": api.reference_id(record.get("userId")),
                },
            )
        super().__init__(*args, **kwargs)
        self.fields["leader"].choices = _choices(students)
        self.fields["asst_leaders"].choices = _choices(students, blank=None)
        self.fields["user_id"].choices = _choices(users, label="username")
        self._style_widgets()

    def clean_color(self):
        color = self.cleaned_data["color"].strip()
        if not HEX_COLOR.match(color):
            raise forms.ValidationError("Enter a hex colour such as #1d4ed8.")
        return color

    def clean(self):
        cleaned_data = super().clean()
        leader = cleaned_data.get("leader")
        if leader and leader in (cleaned_data.get("asst_leaders") or []):
            self.add_error("asst_leaders", "The leader cannot also be an assistant leader.")
        return cleaned_data

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "name": data["name"].strip(),
            "color": data["color"],
            "leader": data["leader"] or None,
            "asstLeaders": data["asst_leaders"],
            "userId": data["user_id"] or None,
        }


# ---------- programs ----------

class ProgramForm(ConsoleFormMixin, forms.Form):
    program_code = forms.CharField(label="Program code", max_length=20, error_messages={"required": "Program code is required"})
    name = forms.CharField(max_length=120, error_messages={"required": "Program name is required"})
    description = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 3}))
    category = forms.ChoiceField(
        choices=[("", "Select category")] + _plain(services.CATEGORIES),
        error_messages={"required": "Category is required"},
    )
    is_stage = forms.BooleanField(label="Stage program", required=False, initial=True)
    is_group = forms.BooleanField(label="Group program", required=False)
    duration = forms.IntegerField(label="Duration (minutes)", initial=15)
    max_participants = forms.IntegerField(label="Max participants", initial=1)
    candidates_per_participation = forms.IntegerField(label="Candidates per participation", initial=1, min_value=1)
    venue = forms.CharField(max_length=80, error_messages={"required": "Venue is required"})
    date = forms.DateField(widget=forms.DateInput(attrs={"type": "date"}), error_messages={"required": "Date is required"})
    starting_time = forms.TimeField(
        label="Start time", widget=forms.TimeInput(attrs={"type": "time"}), error_messages={"required": "Start time is required"}
    )
    ending_time = forms.TimeField(
        label="End time", widget=forms.TimeInput(attrs={"type": "time"}), error_messages={"required": "End time is required"}
    )
    status = forms.ChoiceField(choices=_plain(services.PROGRAM_STATUSES), initial="Draft")

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "program_code": record.get("programCode"),
                    "name": record.get("name"),
                    "description": record.get("description"),
                    "category": record.get("category"),
                    "is_stage": record.get("isStage", True),
                    "is_group": record.get("isGroup", False),
                    "duration": record.get("duration"),
                    "max_participants": record.get("maxParticipants") or record.get("noOfParticipation"),
                    "candidates_per_participation": record.get("candidatesPerParticipation") or 1,
                    "venue": record.get("venue"),
                    "date": (record.get("date") or "")[:10] or None,
                    "starting_time": record.get("startingTime"),
                    "ending_time": record.get("endingTime"),
                    "status": record.get("status") or "Draft",
                },
            )
        super().__init__(*args, **kwargs)
        self._style_widgets()
        for name in ("duration", "max_participants"):
            self.fields[name].widget.attrs.setdefault("min", "1")

    def clean_program_code(self):
        code = self.cleaned_data["program_code"].strip()
        if not code:
            raise forms.ValidationError("Program code is required")
        return code

    def clean_duration(self):
        duration = self.cleaned_data["duration"]
        if duration <= 0:
            raise forms.ValidationError("Duration must be greater than 0")
        return duration

    def clean_max_participants(self):
        value = self.cleaned_data["max_participants"]
        if value <= 0:
            raise forms.ValidationError("Max participants must be greater than 0")
        return value

    def clean(self):
        cleaned_data = super().clean()
        start, end = cleaned_data.get("starting_time"), cleaned_data.get("ending_time")
        if start and end and start >= end:
            self.add_error("ending_time", "End time must be after the start time.")
        return cleaned_data

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "programCode": data["program_code"],
            "name": data["name"].strip(),
            "description": data["description"],
            "category": data["category"],
            "isStage": data["is_stage"],
            "isGroup": data["is_group"],
            "duration": data["duration"],
            "maxParticipants": data["max_participants"],
            "noOfParticipation": data["max_participants"],
            "candidatesPerParticipation": data["candidates_per_participation"],
            "venue": data["venue"].strip(),
            "date": data["date"].isoformat(),
            "startingTime": data["starting_time"].strftime("%H:%M"),
            "endingTime": data["ending_time"].strftime("%H:%M"),
            "status": data["status"],
        }


class ProgramStatusForm(forms.Form):
    status = forms.ChoiceField(choices=_plain(services.PROGRAM_STATUSES))


class ResultStatusForm(forms.Form):
    result_status = forms.ChoiceField(choices=_plain(services.RESULT_STATUSES))


# ---------- curbs ----------

class CurbForm(ConsoleFormMixin, forms.Form):
    name = forms.CharField(max_length=100, required=False)
    max_count_of_prog = forms.IntegerField(label="Maximum programs", required=False)

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {"name": record.get("name"), "max_count_of_prog": record.get("maxCountOfProg")},
            )
        super().__init__(*args, **kwargs)
        self._style_widgets()
        self.fields["max_count_of_prog"].widget.attrs.setdefault("min", "1")

    def clean_name(self):
        name = (self.cleaned_data.get("name") or "").strip()
        if not name:
            raise forms.ValidationError("Please enter a curb name")
        return name

    def clean_max_count_of_prog(self):
        value = self.cleaned_data.get("max_count_of_prog")
        if value is None or value <= 0:
            raise forms.ValidationError("Maximum count of programs must be greater than 0")
        return value

    def payload(self) -> dict:
        return {
            "name": self.cleaned_data["name"],
            "maxCountOfProg": self.cleaned_data["max_count_of_prog"],
        }


class CurbProgramsForm(ConsoleFormMixin, forms.Form):
    programs = forms.MultipleChoiceField(choices=(), required=False, widget=forms.CheckboxSelectMultiple)

    def __init__(self, *args, curb: dict, programs=(), **kwargs) -> None:
        kwargs.setdefault("initial", {"programs": [api.reference_id(item) for item in curb.get("programs") or []]})
        super().__init__(*args, **kwargs)
        self.curb = curb
        self.fields["programs"].choices = _choices(programs, blank=None)
        self._style_widgets()

    def clean_programs(self):
        selected = self.cleaned_data["programs"]
        maximum = services.curb_utilization(self.curb).maximum
        if maximum and len(selected) > maximum:
            raise forms.ValidationError(f"A curb can hold at most {maximum} programs.")
        return selected


# ---------- positions & grades ----------

class PositionForm(ConsoleFormMixin, forms.Form):
    category = forms.ChoiceField(choices=_plain(services.POSITION_CATEGORIES), initial="First")
    rank = forms.IntegerField(min_value=1, initial=1)
    points = forms.IntegerField(min_value=0, initial=0)
    is_group = forms.BooleanField(label="Group", required=False)
    is_kulliyya = forms.BooleanField(label="Kulliyya", required=False)
    is_active = forms.BooleanField(label="Active", required=False, initial=True)

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "category": (record.get("category") or "First").capitalize(),
                    "rank": record.get("rank"),
                    "points": record.get("points"),
                    "is_group": record.get("isGroup", False),
                    "is_kulliyya": record.get("isKulliyya", False),
                    "is_active": record.get("isActive", True),
                },
            )
        super().__init__(*args, **kwargs)
        self._style_widgets()

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "category": data["category"],
            "rank": data["rank"],
            "points": data["points"],
            "isGroup": data["is_group"],
            "isKulliyya": data["is_kulliyya"],
            "isActive": data["is_active"],
        }


class GradeForm(ConsoleFormMixin, forms.Form):
    category = forms.CharField(max_length=4, initial="A")
    score_from = forms.DecimalField(label="From (%)", min_value=Decimal("0"), max_value=Decimal("100"), decimal_places=2)
    score_to = forms.DecimalField(label="To (%)", min_value=Decimal("0"), max_value=Decimal("100"), decimal_places=2)
    points = forms.IntegerField(min_value=0, initial=0)
    color = forms.ChoiceField(choices=_plain(services.GRADE_COLORS), initial="green")
    is_starred = forms.BooleanField(label="Starred", required=False)
    is_active = forms.BooleanField(label="Active", required=False, initial=True)

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "category": record.get("category"),
                    "score_from": record.get("from"),
                    "score_to": record.get("to"),
                    "points": record.get("points"),
                    "color": record.get("color") or "green",
                    "is_starred": record.get("isStarred", False),
                    "is_active": record.get("isActive", True),
                },
            )
        super().__init__(*args, **kwargs)
        self._style_widgets()

    def clean(self):
        cleaned_data = super().clean()
        lower, upper = cleaned_data.get("score_from"), cleaned_data.get("score_to")
        if lower is not None and upper is not None and lower > upper:
            self.add_error("score_to", "The upper bound must not be below the lower bound.")
        return cleaned_data

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "category": data["category"].strip().upper(),
            "from": float(data["score_from"]),
            "to": float(data["score_to"]),
            "points": data["points"],
            "color": data["color"],
            "isStarred": data["is_starred"],
            "isActive": data["is_active"],
        }


# ---------- users & roles ----------

class UserForm(ConsoleFormMixin, forms.Form):
    username = forms.CharField(max_length=150)
    password = forms.CharField(widget=forms.PasswordInput(render_value=False), required=False)
    role = forms.ChoiceField(choices=())
    team = forms.ChoiceField(choices=(), required=False)

    def __init__(self, *args, roles=(), teams=(), record: dict | None = None, **kwargs) -> None:
        self.is_create = record is None
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "username": record.get("username"),
                    "role": api.reference_id(record.get("role")),
                    "team": api.reference_id(record.get("team") or record.get("teamId")),
                },
            )
        super().__init__(*args, **kwargs)
        self.fields["role"].choices = _choices(roles, blank="Select role")
        self.fields["team"].choices = _choices(teams, blank="No team")
        if not self.is_create:
            self.fields["password"].help_text = "Leave blank to keep the current password."
        self._style_widgets()

    def clean_password(self):
        password = self.cleaned_data.get("password") or ""
        if self.is_create and not password:
            raise forms.ValidationError("A password is required for new users.")
        return password

    def payload(self) -> dict:
        data = self.cleaned_data
        body = {
            "username": data["username"].strip(),
            "role": data["role"],
            "team": data["team"] or None,
        }
        if data["password"]:
            body["password"] = data["password"]
        return body


class RoleForm(ConsoleFormMixin, forms.Form):
    name = forms.CharField(max_length=80)
    permissions = forms.MultipleChoiceField(choices=(), required=False, widget=forms.CheckboxSelectMultiple)

    def __init__(self, *args, permissions=(), record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "name": record.get("name"),
                    "permissions": [api.reference_id(item) for item in record.get("permissions") or []],
                },
            )
        super().__init__(*args, **kwargs)
        self.fields["permissions"].choices = _choices(permissions, blank=None)
        self._style_widgets()

    def payload(self) -> dict:
        return {"name": self.cleaned_data["name"].strip(), "permissions": self.cleaned_data["permissions"]}


class PermissionForm(ConsoleFormMixin, forms.Form):
    name = forms.CharField(max_length=80, error_messages={"required": "Permission name is required"})
    is_active = forms.BooleanField(label="Active", required=False, initial=True)

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault("initial", {"name": record.get("name"), "is_active": record.get("isActive", True)})
        super().__init__(*args, **kwargs)
        self._style_widgets()

    def payload(self) -> dict:
        return {"name": self.cleaned_data["name"].strip(), "isActive": self.cleaned_data["is_active"]}


class CategoryForm(ConsoleFormMixin, forms.Form):
    name = forms.CharField(max_length=80, error_messages={"required": "Category name is required"})
    description = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={"rows": 3, "placeholder": "Optional description for this category"}),
    )

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault("initial", {"name": record.get("name"), "description": record.get("description") or ""})
        super().__init__(*args, **kwargs)
        self._style_widgets()

    def payload(self) -> dict:
        return {"name": self.cleaned_data["name"].strip(), "description": self.cleaned_data["description"].strip()}


# ---------- content ----------

CONTENT_STATUSES = ("draft", "published", "archived")
EVENT_STATUSES = ("upcoming", "ongoing", "completed", "cancelled")


class EventForm(ConsoleFormMixin, forms.Form):
    title = forms.CharField(max_length=150)
    description = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 3}))
    date = forms.DateField(widget=forms.DateInput(attrs={"type": "date"}))
    time = forms.TimeField(required=False, widget=forms.TimeInput(attrs={"type": "time"}))
    location = forms.CharField(max_length=120, required=False)
    category = forms.CharField(max_length=60, required=False)
    status = forms.ChoiceField(choices=_plain(EVENT_STATUSES), initial="upcoming")

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "title": record.get("title"),
                    "description": record.get("description"),
                    "date": (record.get("date") or "")[:10] or None,
                    "time": record.get("time"),
                    "location": record.get("location"),
                    "category": record.get("category"),
                    "status": record.get("status") or "upcoming",
                },
            )
        super().__init__(*args, **kwargs)
        self._style_widgets()

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "title": data["title"].strip(),
            "description": data["description"],
            "date": data["date"].isoformat(),
            "time": data["time"].strftime("%H:%M") if data["time"] else "",
            "location": data["location"],
            "category": data["category"],
            "status": data["status"],
        }


class UploadFormMixin(ConsoleFormMixin):
    """Forms whose payload goes out as multipart with one file part."""

    file_field = "file"
    file_required_on_create = True

    def _require_file(self, is_create: bool) -> None:
        self.fields[self.file_field].required = is_create and self.file_required_on_create

    def files_payload(self) -> dict | None:
        upload = self.cleaned_data.get(self.file_field)
        if not upload:
            return None
        return {self.file_field: (upload.name, upload.read(), upload.content_type or "application/octet-stream")}


def _tags(value: str) -> str:
    return ",".join(tag.strip() for tag in (value or "").split(",") if tag.strip())


class NewsForm(UploadFormMixin, forms.Form):
    file_field = "featuredImage"
    file_required_on_create = False

    title = forms.CharField(max_length=200)
    excerpt = forms.CharField(max_length=300, required=False)
    content = forms.CharField(widget=forms.Textarea(attrs={"rows": 8}))
    category = forms.CharField(max_length=60, required=False)
    tags = forms.CharField(max_length=200, required=False, help_text="Comma separated")
    status = forms.ChoiceField(choices=_plain(CONTENT_STATUSES), initial="draft")
    featuredImage = forms.ImageField(label="Featured image", required=False)

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "title": record.get("title"),
                    "excerpt": record.get("excerpt"),
                    "content": record.get("content"),
                    "category": record.get("category"),
                    "tags": ", ".join(record.get("tags") or []),
                    "status": record.get("status") or "draft",
                },
            )
        super().__init__(*args, **kwargs)
        self._require_file(record is None)
        self._style_widgets()

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "title": data["title"].strip(),
            "excerpt": data["excerpt"],
            "content": data["content"],
            "category": data["category"],
            "tags": _tags(data["tags"]),
            "status": data["status"],
        }


class GalleryForm(UploadFormMixin, forms.Form):
    title = forms.CharField(max_length=150)
    description = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 3}))
    category = forms.CharField(max_length=60, required=False)
    tags = forms.CharField(max_length=200, required=False, help_text="Comma separated")
    is_public = forms.BooleanField(label="Public", required=False, initial=True)
    file = forms.FileField(required=False)

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "title": record.get("title"),
                    "description": record.get("description"),
                    "category": record.get("category"),
                    "tags": ", ".join(record.get("tags") or []),
                    "is_public": record.get("isPublic", True),
                },
            )
        super().__init__(*args, **kwargs)
        self._require_file(record is None)
        self._style_widgets()

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "title": data["title"].strip(),
            "description": data["description"],
            "category": data["category"],
            "tags": _tags(data["tags"]),
            "isPublic": str(data["is_public"]).lower(),
        }


DOWNLOAD_CATEGORIES = (
    "Rules & Regulations",
    "Forms & Applications",
    "Schedules",
    "Results",
    "Certificates",
    "Reports & Documents",
    "Other",
)


class DownloadForm(UploadFormMixin, forms.Form):
    title = forms.CharField(max_length=150)
    description = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 3}))
    category = forms.ChoiceField(choices=[("", "Select category")] + _plain(DOWNLOAD_CATEGORIES))
    version = forms.CharField(max_length=20, initial="1.0")
    is_public = forms.BooleanField(label="Public", required=False, initial=True)
    file = forms.FileField(required=False)

    def __init__(self, *args, record: dict | None = None, **kwargs) -> None:
        if record is not None:
            kwargs.setdefault(
                "initial",
                {
                    "title": record.get("title"),
                    "description": record.get("description"),
                    "category": record.get("category"),
                    "version": record.get("version") or "1.0",
                    "is_public": record.get("isPublic", True),
                },
            )
        super().__init__(*args, **kwargs)
        self._require_file(record is None)
        self._style_widgets()

    def payload(self) -> dict:
        data = self.cleaned_data
        return {
            "title": data["title"].strip(),
            "description": data["description"],
            "category": data["category"],
            "version": data["version"],
            "isPublic": str(data["is_public"]).lower(),
        }


# ---------- judgment ----------

class ScoreSheetForm(ConsoleFormMixin, forms.Form):
    """One set of rubric inputs per participation, keyed by its id."""

    result_status = forms.ChoiceField(choices=_plain(services.SHEET_RESULT_STATUSES), required=False)

    def __init__(self, rows: list[scoring.ScoreRow], *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.rows = rows
        for row in rows:
            pid = row.participation_id
            for criterion in scoring.RUBRIC:
                self.fields[self.field_name(criterion.key, pid)] = forms.DecimalField(
                    label=f"{row.candidate_label} - {criterion.label}",
                    required=False,
                    min_value=Decimal("0"),
                    max_value=Decimal(criterion.max_points),
                    decimal_places=2,
                    initial=row.scores.get(criterion.key),
                    widget=forms.NumberInput(
                        attrs={"class": SCORE_INPUT_CLASSES, "min": "0", "max": str(criterion.max_points), "step": "0.5"}
                    ),
                    error_messages={
                        "max_value": f"{criterion.label} cannot be above {criterion.max_points}",
                        "min_value": f"{criterion.label} cannot be negative",
                    },
                )
            self.fields[self.field_name("remarks", pid)] = forms.CharField(
                label=f"{row.candidate_label} - Remarks",
                required=False,
                max_length=300,
                initial=row.remarks,
                widget=forms.TextInput(attrs={"class": TEXT_INPUT_CLASSES}),
            )

    @staticmethod
    def field_name(key: str, participation_id: str) -> str:
        return f"{key}_{participation_id}"

    def grid(self) -> list[dict]:
        """Bound fields grouped per row for the template."""
        out = []
        for row in self.rows:
            pid = row.participation_id
            out.append(
                {
                    "row": row,
                    "scores": [self[self.field_name(criterion.key, pid)] for criterion in scoring.RUBRIC],
                    "remarks": self[self.field_name("remarks", pid)],
                }
            )
        return out

    def apply(self) -> list[scoring.ScoreRow]:
        """Copy the cleaned inputs onto the rows; blanks count as zero."""
        for row in self.rows:
            pid = row.participation_id
            for criterion in scoring.RUBRIC:
                row.scores[criterion.key] = scoring.parse_score(
                    self.cleaned_data.get(self.field_name(criterion.key, pid))
                )
            row.remarks = self.cleaned_data.get(self.field_name("remarks", pid)) or ""
        return self.rows
