"""Views for the festadmin console."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.contrib import messages
from django.http import HttpRequest, HttpResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils import timezone
from django.utils.http import urlencode
from django.views.decorators.http import require_POST

from . import api, forms, scoring, services
from .auth import permission_required

logger = logging.getLogger(__name__)


# ---------- helpers ----------

def _report_error(request: HttpRequest, exc: api.ApiError, fallback: str) -> None:
    """Toast the server message or ``fallback``; a 401 goes to the session middleware."""

    if exc.is_unauthorized:
        raise exc
    logger.warning("%s: %s", fallback, exc)
    messages.error(request, exc.user_message(fallback))


def _fetch(request: HttpRequest, client: api.ApiClient, path: str, fallback: str, key: str | None = None) -> list[dict]:
    try:
        return client.collection(path, key)
    except api.ApiError as e:
        _report_error(request, e, fallback)
        return []


def _fetch_record(request: HttpRequest, client: api.ApiClient, path: str, fallback: str) -> dict | None:
    try:
        record = api.extract_record(client.get(path))
    except api.ApiError as e:
        _report_error(request, e, fallback)
        return None
    return record or None


def _flag(value: str | None) -> bool | None:
    if value in ("true", "yes", "1"):
        return True
    if value in ("false", "no", "0"):
        return False
    return None


def _options(values) -> list[tuple[str, str]]:
    return [(value, value) for value in values]


def _record_options(records, label: str = "name") -> list[tuple[str, str]]:
    return [
        (api.record_id(record), str(services.lookup(record, label) or api.record_id(record)))
        for record in records
        if api.record_id(record)
    ]


def _filter(name: str, label: str, options, value: str | None) -> dict:
    return {"name": name, "label": label, "options": list(options), "value": value or "all"}


BOOLEAN_OPTIONS = (("true", "Yes"), ("false", "No"))


@dataclass(frozen=True)
class Column:
    label: str
    path: str
    kind: str = "text"


@dataclass(frozen=True)
class Resource:
    """How one backend collection is listed, edited and deleted."""

    path: str
    singular: str
    plural: str
    url_prefix: str
    form_class: type
    columns: tuple[Column, ...] = ()
    search_fields: tuple[str, ...] = ("name",)
    label_field: str = "name"
    update_method: str = "patch"
    list_name: str = ""
    create_perm: str | None = None
    edit_perm: str | None = None
    delete_perm: str | None = None

    @property
    def list_url(self) -> str:
        return self.list_name or f"festadmin:{self.url_prefix}-list"

    @property
    def create_url(self) -> str:
        return f"festadmin:{self.url_prefix}-create"

    @property
    def edit_url(self) -> str:
        return f"festadmin:{self.url_prefix}-edit"

    @property
    def delete_url(self) -> str:
        return f"festadmin:{self.url_prefix}-delete"


STUDENTS = Resource(
    path="/students",
    singular="student",
    plural="Students",
    url_prefix="student",
    form_class=forms.StudentForm,
    columns=(
        Column("Chest No.", "chestNo"),
        Column("Name", "name"),
        Column("Class", "class"),
        Column("Category", "category"),
        Column("Team", "team.name"),
        Column("Points", "totalPoint.published"),
        Column("Active", "isActive", "bool"),
    ),
    search_fields=("name", "chestNo", "class"),
    create_perm="add_student",
    edit_perm="edit_students",
    delete_perm="delete_students",
)

TEAMS = Resource(
    path="/teams",
    singular="team",
    plural="Teams",
    url_prefix="team",
    form_class=forms.TeamForm,
    columns=(
        Column("Colour", "color", "color"),
        Column("Name", "name"),
        Column("Leader", "leader.name"),
        Column("Login user", "userId.username"),
        Column("Points", "totalPoint.published"),
    ),
    create_perm="add_team",
    edit_perm="edit_team",
    delete_perm="delete_team",
)

PROGRAMS = Resource(
    path="/programs",
    singular="program",
    plural="Programs",
    url_prefix="program",
    form_class=forms.ProgramForm,
    columns=(
        Column("Code", "programCode"),
        Column("Name", "name"),
        Column("Category", "category"),
        Column("Stage", "isStage", "bool"),
        Column("Group", "isGroup", "bool"),
        Column("Venue", "venue"),
        Column("Date", "date", "date"),
        Column("Time", "startingTime"),
        Column("Status", "status", "status"),
        Column("Result", "resultStatus", "status"),
    ),
    search_fields=("name", "programCode"),
)

CURBS = Resource(
    path="/curbs",
    singular="curb",
    plural="Curbs",
    url_prefix="curb",
    form_class=forms.CurbForm,
)

POSITIONS = Resource(
    path="/positions",
    singular="position",
    plural="Positions",
    url_prefix="position",
    form_class=forms.PositionForm,
    columns=(
        Column("Category", "category", "position"),
        Column("Rank", "rank"),
        Column("Points", "points"),
        Column("Group", "isGroup", "bool"),
        Column("Kulliyya", "isKulliyya", "bool"),
        Column("Active", "isActive", "bool"),
    ),
    label_field="category",
    list_name="festadmin:positions-grades",
)

GRADES = Resource(
    path="/grades",
    singular="grade",
    plural="Grades",
    url_prefix="grade",
    form_class=forms.GradeForm,
    columns=(
        Column("Grade", "category", "grade"),
        Column("From (%)", "from"),
        Column("To (%)", "to"),
        Column("Points", "points"),
        Column("Starred", "isStarred", "bool"),
        Column("Active", "isActive", "bool"),
    ),
    label_field="category",
    list_name="festadmin:positions-grades",
)

USERS = Resource(
    path="/users",
    singular="user",
    plural="Users",
    url_prefix="user",
    form_class=forms.UserForm,
    columns=(
        Column("Username", "username"),
        Column("Role", "role.name"),
        Column("Team", "team.name"),
    ),
    search_fields=("username",),
    label_field="username",
)

ROLES = Resource(
    path="/roles",
    singular="role",
    plural="Roles",
    url_prefix="role",
    form_class=forms.RoleForm,
    columns=(
        Column("Name", "name"),
        Column("Permissions", "permissions", "count"),
    ),
)

PERMISSIONS = Resource(
    path="/permissions",
    singular="permission",
    plural="Permissions",
    url_prefix="permission",
    form_class=forms.PermissionForm,
    columns=(
        Column("Name", "name"),
        Column("Active", "isActive", "bool"),
    ),
    update_method="put",
)

CATEGORIES = Resource(
    path="/categories",
    singular="category",
    plural="Categories",
    url_prefix="category",
    form_class=forms.CategoryForm,
    columns=(
        Column("Name", "name"),
        Column("Description", "description"),
        Column("Students", "studentCount"),
        Column("Programs", "programCount"),
    ),
    search_fields=("name", "description"),
    update_method="put",
)

EVENTS = Resource(
    path="/events",
    singular="event",
    plural="Events",
    url_prefix="event",
    form_class=forms.EventForm,
    columns=(
        Column("Title", "title"),
        Column("Date", "date", "date"),
        Column("Time", "time"),
        Column("Location", "location"),
        Column("Category", "category"),
        Column("Status", "status", "status"),
    ),
    search_fields=("title", "location", "category"),
    label_field="title",
    update_method="put",
)

NEWS = Resource(
    path="/news",
    singular="article",
    plural="News",
    url_prefix="news",
    form_class=forms.NewsForm,
    columns=(
        Column("Title", "title"),
        Column("Category", "category"),
        Column("Status", "status", "status"),
        Column("Views", "views"),
        Column("Published", "publishedAt", "date"),
    ),
    search_fields=("title", "excerpt", "category"),
    label_field="title",
    update_method="put",
)

GALLERY = Resource(
    path="/gallery",
    singular="gallery item",
    plural="Gallery",
    url_prefix="gallery",
    form_class=forms.GalleryForm,
    columns=(
        Column("Preview", "fileUrl", "image"),
        Column("Title", "title"),
        Column("Category", "category"),
        Column("Size", "fileSize", "size"),
        Column("Public", "isPublic", "bool"),
    ),
    search_fields=("title", "description", "category"),
    label_field="title",
    update_method="put",
)

DOWNLOADS = Resource(
    path="/downloads",
    singular="file",
    plural="Downloads",
    url_prefix="download",
    form_class=forms.DownloadForm,
    columns=(
        Column("Title", "title"),
        Column("Category", "category"),
        Column("Version", "version"),
        Column("Type", "fileType"),
        Column("Size", "fileSize", "size"),
        Column("Downloads", "downloadCount"),
        Column("File", "fileUrl", "link"),
    ),
    search_fields=("title", "description"),
    label_field="title",
    update_method="put",
)


def _render_list(request: HttpRequest, resource: Resource, records: list[dict], *, total: int, filters=(), extra=None) -> HttpResponse:
    context = {
        "resource": resource,
        "records": records,
        "total": total,
        "query": request.GET.get("q", ""),
        "filters": list(filters),
    }
    context.update(extra or {})
    return render(request, "festadmin/record_list.html", context)


def _save(client: api.ApiClient, resource: Resource, form, pk: str | None):
    payload = form.payload()
    files = form.files_payload() if isinstance(form, forms.UploadFormMixin) else None
    if pk is None:
        return client.post(resource.path, payload, files=files)
    path = f"{resource.path}/{pk}"
    if resource.update_method == "put":
        return client.put(path, payload, files=files)
    return client.patch(path, payload)


def _record_form(request: HttpRequest, resource: Resource, pk: str | None = None, **form_kwargs) -> HttpResponse:
    """Create (``pk`` is None) or edit one record through ``resource.form_class``."""

    client = api.client_for(request)
    record = None
    if pk is not None:
        record = _fetch_record(request, client, f"{resource.path}/{pk}", f"Failed to fetch {resource.singular}")
        if record is None:
            return redirect(resource.list_url)
    action = "create" if record is None else "update"

    if request.method == "POST":
        form = resource.form_class(request.POST, request.FILES, record=record, **form_kwargs)
        if form.is_valid():
            try:
                _save(client, resource, form, pk)
            except api.ApiError as e:
                _report_error(request, e, f"Failed to {action} {resource.singular}")
            else:
                messages.success(request, f"{resource.singular.capitalize()} {action}d successfully")
                return redirect(resource.list_url)
        else:
            messages.error(request, form.first_error())
    else:
        form = resource.form_class(record=record, **form_kwargs)

    context = {
        "resource": resource,
        "form": form,
        "record": record,
        "pk": pk,
        "is_create": record is None,
    }
    return render(request, "festadmin/record_form.html", context)


def _record_delete(request: HttpRequest, resource: Resource, pk: str) -> HttpResponse:
    """GET asks for confirmation; POST deletes."""

    client = api.client_for(request)
    if request.method == "POST":
        try:
            client.delete(f"{resource.path}/{pk}")
        except api.ApiError as e:
            _report_error(request, e, f"Failed to delete {resource.singular}")
        else:
            messages.success(request, f"{resource.singular.capitalize()} deleted successfully")
        return redirect(resource.list_url)

    record = _fetch_record(request, client, f"{resource.path}/{pk}", f"Failed to fetch {resource.singular}")
    if record is None:
        return redirect(resource.list_url)
    context = {
        "resource": resource,
        "record": record,
        "pk": pk,
        "label": services.lookup(record, resource.label_field) or pk,
    }
    return render(request, "festadmin/confirm_delete.html", context)


# ---------- dashboard ----------

def dashboard(request: HttpRequest) -> HttpResponse:
    """Counts for every collection; a failed fetch leaves its card at ``...``."""

    counts = services.fetch_dashboard_counts(api.client_for(request))
    cards = [
        {"key": key, "title": title, "description": description, "count": counts.get(key)}
        for key, (_path, title, description) in services.DASHBOARD_COLLECTIONS.items()
    ]
    if any(card["count"] is None for card in cards):
        messages.warning(request, "Some dashboard figures could not be loaded.")
    return render(request, "festadmin/dashboard.html", {"cards": cards})


# ---------- students ----------

def student_list(request: HttpRequest) -> HttpResponse:
    client = api.client_for(request)
    students = _fetch(request, client, "/students", "Failed to fetch students")
    teams = _fetch(request, client, "/teams", "Failed to fetch teams")

    category = request.GET.get("category")
    team = request.GET.get("team")
    records = services.filter_records(
        students,
        query=request.GET.get("q"),
        fields=STUDENTS.search_fields,
        category=category,
        team=team,
    )
    filters = [
        _filter("category", "Category", _options(services.CATEGORIES), category),
        _filter("team", "Team", _record_options(teams), team),
    ]
    extra = {"import_url": reverse("festadmin:student-import"), "stats": services.student_stats(students)}
    return _render_list(request, STUDENTS, records, total=len(students), filters=filters, extra=extra)


@permission_required("add_student")
def student_create(request: HttpRequest) -> HttpResponse:
    teams = _fetch(request, api.client_for(request), "/teams", "Failed to fetch teams")
    return _record_form(request, STUDENTS, teams=teams)


@permission_required("edit_students")
def student_edit(request: HttpRequest, pk: str) -> HttpResponse:
    teams = _fetch(request, api.client_for(request), "/teams", "Failed to fetch teams")
    return _record_form(request, STUDENTS, pk, teams=teams)


@permission_required("delete_students")
def student_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, STUDENTS, pk)


@permission_required("import_students")
def student_import(request: HttpRequest) -> HttpResponse:
    """Validate a CSV against the known teams, then POST each valid row."""

    summary = None
    form = forms.StudentImportForm(request.POST or None, request.FILES or None)
    if request.method == "POST":
        if form.is_valid():
            client = api.client_for(request)
            teams = _fetch(request, client, "/teams", "Failed to fetch teams")
            summary = services.parse_student_csv(form.text(), teams)
            if not summary.rows:
                for error in summary.errors or ["No student rows found in the file."]:
                    messages.error(request, error)
            else:
                services.import_students(client, summary)
                text = f"{summary.imported} students imported successfully. {summary.failed} failed."
                if summary.imported:
                    messages.success(request, text)
                else:
                    messages.error(request, text)
        else:
            messages.error(request, form.first_error())
    return render(request, "festadmin/student_import.html", {"form": form, "summary": summary})


def student_import_template(request: HttpRequest) -> HttpResponse:
    response = HttpResponse(services.STUDENT_CSV_TEMPLATE, content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="students_template.csv"'
    return response


# ---------- teams ----------

def team_list(request: HttpRequest) -> HttpResponse:
    teams = _fetch(request, api.client_for(request), "/teams", "Failed to fetch teams")
    records = services.filter_records(teams, query=request.GET.get("q"), fields=TEAMS.search_fields)
    extra = {"leaderboard_url": reverse("festadmin:team-leaderboard"), "stats": services.team_stats(teams)}
    return _render_list(request, TEAMS, records, total=len(teams), extra=extra)


def _team_form_choices(request: HttpRequest) -> dict:
    client = api.client_for(request)
    return {
        "students": _fetch(request, client, "/students", "Failed to fetch students"),
        "users": _fetch(request, client, "/users", "Failed to fetch users"),
    }


@permission_required("add_team")
def team_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, TEAMS, **_team_form_choices(request))


@permission_required("edit_team")
def team_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, TEAMS, pk, **_team_form_choices(request))


@permission_required("delete_team")
def team_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, TEAMS, pk)


@permission_required("view_team_points")
def team_leaderboard(request: HttpRequest) -> HttpResponse:
    teams = _fetch(request, api.client_for(request), "/teams", "Failed to fetch teams")
    category = request.GET.get("category") or "all"
    board = services.leaderboard(teams, category)
    context = {
        "board": board,
        "stats": services.leaderboard_stats(teams, board),
        "category": category,
        "categories": services.CATEGORIES,
    }
    return render(request, "festadmin/team_leaderboard.html", context)


# ---------- programs ----------

def program_list(request: HttpRequest) -> HttpResponse:
    programs = _fetch(request, api.client_for(request), "/programs", "Failed to fetch programs")
    category = request.GET.get("category")
    status = request.GET.get("status")
    stage = request.GET.get("stage")
    group = request.GET.get("group")
    records = services.filter_records(
        programs,
        query=request.GET.get("q"),
        fields=PROGRAMS.search_fields,
        category=category,
        status=status,
        isStage=_flag(stage),
        isGroup=_flag(group),
    )
    filters = [
        _filter("category", "Category", _options(services.CATEGORIES), category),
        _filter("status", "Status", _options(services.PROGRAM_STATUSES), status),
        _filter("stage", "Stage", BOOLEAN_OPTIONS, stage),
        _filter("group", "Group", BOOLEAN_OPTIONS, group),
    ]
    extra = {"schedule_url": reverse("festadmin:program-schedule")}
    return _render_list(request, PROGRAMS, records, total=len(programs), filters=filters, extra=extra)


def program_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, PROGRAMS)


def program_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, PROGRAMS, pk)


def program_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, PROGRAMS, pk)


def program_schedule(request: HttpRequest) -> HttpResponse:
    programs = _fetch(request, api.client_for(request), "/programs", "Failed to fetch programs")
    category = request.GET.get("category")
    venue = request.GET.get("venue")
    date = request.GET.get("date")
    records = services.filter_records(programs, category=category, venue=venue)
    if date:
        records = [program for program in records if (program.get("date") or "")[:10] == date]
    venues = sorted({program.get("venue") for program in programs if program.get("venue")})
    context = {
        "days": services.schedule_by_date(records),
        "filters": [
            _filter("category", "Category", _options(services.CATEGORIES), category),
            _filter("venue", "Venue", _options(venues), venue),
        ],
        "date": date or "",
        "total": len(records),
    }
    return render(request, "festadmin/program_schedule.html", context)


# ---------- curbs ----------

def curb_list(request: HttpRequest) -> HttpResponse:
    client = api.client_for(request)
    curbs = _fetch(request, client, "/curbs", "Failed to fetch curbs")
    programs = _fetch(request, client, "/programs", "Failed to fetch programs")
    by_id = {api.record_id(program): program for program in programs}

    rows = []
    for curb in services.filter_records(curbs, query=request.GET.get("q")):
        members = []
        for item in curb.get("programs") or []:
            if isinstance(item, dict):
                members.append(item)
            elif str(item) in by_id:
                members.append(by_id[str(item)])
            else:
                members.append({"_id": str(item), "name": str(item)})
        rows.append({"curb": curb, "usage": services.curb_utilization(curb), "programs": members})

    context = {"rows": rows, "total": len(curbs), "query": request.GET.get("q", "")}
    return render(request, "festadmin/curb_list.html", context)


def curb_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, CURBS)


def curb_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, CURBS, pk)


def curb_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, CURBS, pk)


def curb_programs(request: HttpRequest, pk: str) -> HttpResponse:
    """Choose the programs grouped under a curb, up to its cap."""

    client = api.client_for(request)
    curb = _fetch_record(request, client, f"/curbs/{pk}", "Failed to fetch curb")
    if curb is None:
        return redirect("festadmin:curb-list")
    programs = _fetch(request, client, "/programs", "Failed to fetch programs")

    form = forms.CurbProgramsForm(request.POST or None, curb=curb, programs=programs)
    if request.method == "POST":
        if form.is_valid():
            try:
                client.patch(f"/curbs/{pk}", {"programs": form.cleaned_data["programs"]})
            except api.ApiError as e:
                _report_error(request, e, "Failed to update curb programs")
            else:
                messages.success(request, "Curb programs updated successfully")
                return redirect("festadmin:curb-list")
        else:
            messages.error(request, form.first_error())
    context = {"curb": curb, "form": form, "usage": services.curb_utilization(curb)}
    return render(request, "festadmin/curb_programs.html", context)


@require_POST
def curb_remove_program(request: HttpRequest, pk: str, program_id: str) -> HttpResponse:
    """Drop one program from a curb once the backend has accepted the change."""

    client = api.client_for(request)
    curb = _fetch_record(request, client, f"/curbs/{pk}", "Failed to fetch curb")
    if curb is None:
        return redirect("festadmin:curb-list")
    remaining = [
        api.reference_id(item)
        for item in curb.get("programs") or []
        if api.reference_id(item) != program_id
    ]
    try:
        client.patch(f"/curbs/{pk}", {"programs": remaining})
    except api.ApiError as e:
        _report_error(request, e, "Failed to remove program from curb")
    else:
        messages.success(request, "Program removed from curb")
    return redirect("festadmin:curb-list")


# ---------- positions & grades ----------

def positions_grades(request: HttpRequest) -> HttpResponse:
    client = api.client_for(request)
    context = {
        "positions": _fetch(request, client, "/positions", "Failed to fetch positions", key="positions"),
        "grades": _fetch(request, client, "/grades", "Failed to fetch grades", key="grades"),
        "position_resource": POSITIONS,
        "grade_resource": GRADES,
    }
    return render(request, "festadmin/positions_grades.html", context)


def position_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, POSITIONS)


def position_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, POSITIONS, pk)


def position_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, POSITIONS, pk)


def grade_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, GRADES)


def grade_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, GRADES, pk)


def grade_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, GRADES, pk)


# ---------- users & roles ----------

def user_list(request: HttpRequest) -> HttpResponse:
    client = api.client_for(request)
    users = _fetch(request, client, "/users", "Failed to fetch users")
    roles = _fetch(request, client, "/roles", "Failed to fetch roles")
    role = request.GET.get("role")
    records = services.filter_records(users, query=request.GET.get("q"), fields=USERS.search_fields, role=role)
    filters = [_filter("role", "Role", _record_options(roles), role)]
    return _render_list(request, USERS, records, total=len(users), filters=filters)


def _user_form_choices(request: HttpRequest) -> dict:
    client = api.client_for(request)
    return {
        "roles": _fetch(request, client, "/roles", "Failed to fetch roles"),
        "teams": _fetch(request, client, "/teams", "Failed to fetch teams"),
    }


def user_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, USERS, **_user_form_choices(request))


def user_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, USERS, pk, **_user_form_choices(request))


def user_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, USERS, pk)


def role_list(request: HttpRequest) -> HttpResponse:
    roles = _fetch(request, api.client_for(request), "/roles", "Failed to fetch roles")
    records = services.filter_records(roles, query=request.GET.get("q"))
    return _render_list(request, ROLES, records, total=len(roles))


def _permission_choices(request: HttpRequest) -> list[dict]:
    return _fetch(request, api.client_for(request), "/permissions", "Failed to fetch permissions")


def role_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, ROLES, permissions=_permission_choices(request))


def role_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, ROLES, pk, permissions=_permission_choices(request))


def role_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, ROLES, pk)


def permission_list(request: HttpRequest) -> HttpResponse:
    permissions = _fetch(request, api.client_for(request), "/permissions", "Failed to fetch permissions")
    records = services.filter_records(permissions, query=request.GET.get("q"))
    return _render_list(request, PERMISSIONS, records, total=len(permissions))


def permission_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, PERMISSIONS)


def permission_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, PERMISSIONS, pk)


def permission_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, PERMISSIONS, pk)


# ---------- categories ----------

def category_list(request: HttpRequest) -> HttpResponse:
    categories = _fetch(request, api.client_for(request), "/categories", "Failed to fetch categories")
    records = services.filter_records(categories, query=request.GET.get("q"), fields=CATEGORIES.search_fields)
    extra = {"stats": services.category_stats(categories)}
    return _render_list(request, CATEGORIES, records, total=len(categories), extra=extra)


def category_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, CATEGORIES)


def category_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, CATEGORIES, pk)


def category_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, CATEGORIES, pk)


# ---------- events & content ----------

def event_list(request: HttpRequest) -> HttpResponse:
    events = _fetch(request, api.client_for(request), "/events", "Failed to fetch events")
    status = request.GET.get("status")
    records = services.filter_records(events, query=request.GET.get("q"), fields=EVENTS.search_fields, status=status)
    filters = [_filter("status", "Status", _options(forms.EVENT_STATUSES), status)]
    return _render_list(request, EVENTS, records, total=len(events), filters=filters)


def event_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, EVENTS)


def event_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, EVENTS, pk)


def event_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, EVENTS, pk)


def news_list(request: HttpRequest) -> HttpResponse:
    articles = _fetch(request, api.client_for(request), "/news", "Failed to fetch news articles", key="news")
    status = request.GET.get("status")
    records = services.filter_records(articles, query=request.GET.get("q"), fields=NEWS.search_fields, status=status)
    filters = [_filter("status", "Status", _options(forms.CONTENT_STATUSES), status)]
    return _render_list(request, NEWS, records, total=len(articles), filters=filters)


def news_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, NEWS)


def news_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, NEWS, pk)


def news_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, NEWS, pk)


def gallery_list(request: HttpRequest) -> HttpResponse:
    items = _fetch(request, api.client_for(request), "/gallery", "Failed to fetch gallery items", key="gallery")
    category = request.GET.get("category")
    records = services.filter_records(items, query=request.GET.get("q"), fields=GALLERY.search_fields, category=category)
    categories = sorted({item.get("category") for item in items if item.get("category")})
    filters = [_filter("category", "Category", _options(categories), category)]
    return _render_list(request, GALLERY, records, total=len(items), filters=filters)


def gallery_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, GALLERY)


def gallery_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, GALLERY, pk)


def gallery_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, GALLERY, pk)


def download_list(request: HttpRequest) -> HttpResponse:
    files = _fetch(request, api.client_for(request), "/downloads", "Failed to fetch downloads", key="downloads")
    category = request.GET.get("category")
    family = request.GET.get("type")
    records = services.filter_records(files, query=request.GET.get("q"), fields=DOWNLOADS.search_fields, category=category)
    if family not in services.ANY:
        records = [record for record in records if services.file_type_family(record.get("fileType")) == family]
    filters = [
        _filter("category", "Category", _options(forms.DOWNLOAD_CATEGORIES), category),
        _filter("type", "File type", _options(services.FILE_FAMILIES), family),
    ]
    return _render_list(request, DOWNLOADS, records, total=len(files), filters=filters)


def download_create(request: HttpRequest) -> HttpResponse:
    return _record_form(request, DOWNLOADS)


def download_edit(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_form(request, DOWNLOADS, pk)


def download_delete(request: HttpRequest, pk: str) -> HttpResponse:
    return _record_delete(request, DOWNLOADS, pk)


# ---------- judgment ----------

def _program_filters(request: HttpRequest) -> dict[str, str]:
    return {
        "q": request.GET.get("q", ""),
        "category": request.GET.get("category") or "all",
        "status": request.GET.get("status") or "all",
        "result_status": request.GET.get("result_status") or "all",
    }


def _filter_programs(programs: list[dict], filters: dict[str, str]) -> list[dict]:
    return services.filter_records(
        programs,
        query=filters["q"],
        fields=("name", "programCode"),
        category=filters["category"],
        status=filters["status"],
        resultStatus=filters["result_status"],
    )


def judgment_index(request: HttpRequest) -> HttpResponse:
    programs = _fetch(request, api.client_for(request), "/programs", "Failed to fetch programs")
    filters = _program_filters(request)
    context = {
        "programs": _filter_programs(programs, filters),
        "total": len(programs),
        "query": filters["q"],
        "filters": [
            _filter("category", "Category", _options(services.CATEGORIES), filters["category"]),
            _filter("status", "Status", _options(services.PROGRAM_STATUSES), filters["status"]),
            _filter("result_status", "Result", _options(services.RESULT_STATUSES), filters["result_status"]),
        ],
        "program_statuses": services.PROGRAM_STATUSES,
        "result_statuses": services.RESULT_STATUSES,
        "print_query": urlencode({key: value for key, value in filters.items() if value not in services.ANY}),
    }
    return render(request, "festadmin/judgment_index.html", context)


def _back_to_index(request: HttpRequest) -> HttpResponse:
    next_url = request.POST.get("next") or ""
    if next_url.startswith(reverse("festadmin:judgment-index")):
        return redirect(next_url)
    return redirect("festadmin:judgment-index")


@require_POST
def program_status(request: HttpRequest, pk: str) -> HttpResponse:
    form = forms.ProgramStatusForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Choose a valid program status.")
        return _back_to_index(request)
    try:
        api.client_for(request).patch(f"/programs/{pk}", {"status": form.cleaned_data["status"]})
    except api.ApiError as e:
        _report_error(request, e, "Failed to update program status")
    else:
        messages.success(request, "Program status updated")
    return _back_to_index(request)


@require_POST
def program_result_status(request: HttpRequest, pk: str) -> HttpResponse:
    form = forms.ResultStatusForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Choose a valid result status.")
        return _back_to_index(request)
    try:
        api.client_for(request).patch(
            f"/programs/change_result_status/{pk}",
            {"resultStatus": form.cleaned_data["result_status"]},
        )
    except api.ApiError as e:
        _report_error(request, e, "Failed to update result status")
    else:
        messages.success(request, "Result status updated")
    return _back_to_index(request)


def judgment_sheet(request: HttpRequest, pk: str) -> HttpResponse:
    """Score every participation of one program and submit the results."""

    client = api.client_for(request)
    try:
        bundle = api.extract_record(client.get(f"/programs/{pk}/with_participation_and_judgments"))
    except api.ApiError as e:
        _report_error(request, e, "Failed to fetch program with participation")
        return redirect("festadmin:judgment-index")
    try:
        grades = client.collection(f"/grades/program/{pk}", "grades")
        positions = client.collection(f"/positions/program/{pk}", "positions")
    except api.ApiError as e:
        _report_error(request, e, "Failed to fetch grade and position")
        grades, positions = [], []

    program = bundle.get("program") or {}
    rows = scoring.build_score_rows(bundle.get("participations") or [])
    form = forms.ScoreSheetForm(rows, request.POST or None)

    if request.method == "POST":
        if form.is_valid():
            form.apply()
            scoring.evaluate_score_sheet(rows, grades, positions)
            if request.POST.get("action") != "preview":
                response = _submit_sheet(request, client, program, pk, rows, form.cleaned_data["result_status"])
                if response is not None:
                    return response
        else:
            messages.error(request, form.first_error())
    else:
        scoring.evaluate_score_sheet(rows, grades, positions)

    context = {
        "program": program,
        "pk": pk,
        "form": form,
        "grid": form.grid(),
        "editable": services.results_editable(program),
        "rubric": scoring.RUBRIC,
        "rubric_max": scoring.RUBRIC_MAX,
        "grades": grades,
        "positions": positions,
    }
    return render(request, "festadmin/judgment_sheet.html", context)


def _submit_sheet(request, client, program, pk, rows, result_status) -> HttpResponse | None:
    """Write the sheet unless the program's results are past judging."""

    if not services.results_editable(program):
        logger.info("refused score sheet for program %s in result status %s", pk, program.get("resultStatus"))
        messages.error(
            request,
            f"Results for this program are {program.get('resultStatus')}; judgments can no longer be changed.",
        )
        return None
    if not result_status:
        messages.error(request, "Choose whether to save the scores or submit the judgment.")
        return None

    report = services.submit_score_sheet(client, pk, rows, result_status)
    if report.ok:
        if result_status == "processing":
            messages.success(request, "Scores saved")
        else:
            messages.success(request, "Judgments submitted successfully")
        return redirect("festadmin:judgment-sheet", pk=pk)
    fallback = "Failed to submit judgments"
    if report.failed_row is not None:
        fallback = f"{fallback} (stopped at {report.failed_row.candidate_label})"
    _report_error(request, report.error, fallback)
    return None


# ---------- results ----------

def result_list(request: HttpRequest) -> HttpResponse:
    programs = _fetch(request, api.client_for(request), "/programs", "Failed to fetch programs")
    filters = _program_filters(request)
    records = _filter_programs(programs, filters)
    counts = services.result_status_counts(programs)
    context = {
        "programs": records,
        "total": len(programs),
        "query": filters["q"],
        "published": counts.get("published", 0),
        "pending": counts.get("pending", 0),
        "other": len(programs) - counts.get("published", 0) - counts.get("pending", 0),
        "filters": [
            _filter("category", "Category", _options(services.CATEGORIES), filters["category"]),
            _filter("result_status", "Result", _options(services.RESULT_STATUSES), filters["result_status"]),
        ],
        "print_query": urlencode({key: value for key, value in filters.items() if value not in services.ANY}),
    }
    return render(request, "festadmin/result_list.html", context)


def program_results(request: HttpRequest, pk: str) -> HttpResponse:
    client = api.client_for(request)
    program = _fetch_record(request, client, f"/programs/{pk}", "Failed to fetch program") or {}
    results = _fetch(request, client, f"/results/program/{pk}", "Failed to fetch results", key="results")
    context = {
        "program": program,
        "pk": pk,
        "results": scoring.sort_printed_participations(results),
    }
    return render(request, "festadmin/program_results.html", context)


def result_export(request: HttpRequest, pk: str) -> HttpResponse:
    try:
        content, content_type = api.client_for(request).download(f"/results/export/{pk}")
    except api.ApiError as e:
        _report_error(request, e, "Failed to export results")
        return redirect("festadmin:program-results", pk=pk)
    if "csv" not in content_type:
        content_type = "text/csv"
    response = HttpResponse(content, content_type=content_type)
    response["Content-Disposition"] = f'attachment; filename="results-{pk}.csv"'
    return response


def _pairs(items: list) -> list[list]:
    return [items[index:index + 2] for index in range(0, len(items), 2)]


def result_print(request: HttpRequest) -> HttpResponse:
    """Printable results for every program matching the current filters."""

    client = api.client_for(request)
    programs = _fetch(request, client, "/programs", "Failed to fetch programs")
    filters = _program_filters(request)
    selected = _filter_programs(programs, filters)
    if not selected:
        messages.info(request, "No programs match the current filters.")
        return redirect("festadmin:result-list")

    try:
        payload = client.post("/programs/bulk_result", {"programIds": [api.record_id(p) for p in selected]})
    except api.ApiError as e:
        _report_error(request, e, "Failed to load results for printing")
        return redirect("festadmin:result-list")

    status = filters["result_status"]
    tables = [
        {
            "program": item.get("program") or {},
            "participations": scoring.sort_printed_participations(item.get("participations") or []),
        }
        for item in api.extract_collection(payload)
        if isinstance(item, dict)
    ]
    teams = scoring.rank_teams(api.extract_collection(payload, "team"), status)
    program_count = len(selected)
    if status not in ("all", "published"):
        program_count += sum(1 for program in programs if program.get("resultStatus") == "published")

    context = {
        "fest_title": settings.ARTFEST_FEST_TITLE,
        "fest_subtitle": settings.ARTFEST_FEST_SUBTITLE,
        "status": status,
        "rows": _pairs(tables),
        "program_count": program_count,
        "total_points": sum(scoring.team_total(team, status) for team in teams),
        "teams": [{"team": team, "points": scoring.team_total(team, status)} for team in teams],
        "category_tables": [
            {
                "category": category,
                "teams": sorted(
                    ({"team": team, "points": scoring.team_category_total(team, category, status)} for team in teams),
                    key=lambda row: row["points"],
                    reverse=True,
                ),
            }
            for category in services.CATEGORIES
        ],
        "generated_at": timezone.localtime(),
    }
    return render(request, "festadmin/printables/results.html", context)
