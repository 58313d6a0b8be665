from django import template

from festadmin import api, auth, services

register = template.Library()

POSITION_BADGES = {
    1: "badge-gold",
    2: "badge-silver",
    3: "badge-bronze",
}

STATUS_BADGES = {
    "published": "badge-green",
    "completed": "badge-blue",
    "archived": "badge-gray",
    "processing": "badge-yellow",
    "pending": "badge-orange",
    "scheduled": "badge-blue",
    "draft": "badge-gray",
    "cancelled": "badge-red",
    "upcoming": "badge-blue",
    "ongoing": "badge-yellow",
}


@register.filter
def lookup(record, path):
    """Read a dotted path such as ``team.name`` from a backend record."""
    return services.lookup(record, path)


@register.filter
def pk(record):
    """Backend records key on ``_id``, which templates cannot read directly."""
    return api.record_id(record)


@register.filter
def dictlookup(dictionary, key):
    """Retrieve value from dictionary by key in Django templates."""
    if not isinstance(dictionary, dict):
        return None
    return dictionary.get(key)


@register.filter
def has_perm(user, name):
    return auth.has_permission(user, name)


@register.filter
def human_size(value):
    return services.human_size(value)


@register.filter
def position_badge(position):
    rank = position.get("rank") if isinstance(position, dict) else position
    try:
        return POSITION_BADGES.get(int(rank), "badge-gray")
    except (TypeError, ValueError):
        return "badge-gray"


@register.filter
def grade_badge(grade):
    if not isinstance(grade, dict):
        return "badge-gray"
    return f"badge-{grade.get('color') or 'gray'}"


@register.filter
def status_badge(status):
    return STATUS_BADGES.get(str(status or "").lower(), "badge-gray")

