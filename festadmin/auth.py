"""Console session context: token storage, sign-in hand-off and permission checks."""
from __future__ import annotations

import logging
from functools import wraps

from django.conf import settings
from django.contrib import messages
from django.http import HttpRequest, HttpResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme, urlencode
from django.views.decorators.http import require_POST

from . import api

logger = logging.getLogger(__name__)

TOKEN_SESSION_KEY = "festadmin.token"
USER_SESSION_KEY = "festadmin.user"

SUPER_ROLES = {"admin", "superadmin", "super admin"}


def store_credentials(request: HttpRequest, token: str, user: dict | None) -> None:
    request.session[TOKEN_SESSION_KEY] = token
    request.session[USER_SESSION_KEY] = user or {}
    request.session.modified = True


def clear_credentials(request: HttpRequest) -> None:
    request.session.pop(TOKEN_SESSION_KEY, None)
    request.session.pop(USER_SESSION_KEY, None)
    request.session.modified = True


def _role_of(user) -> dict:
    if not isinstance(user, dict):
        return {}
    role = user.get("role")
    if isinstance(role, dict):
        return role
    if isinstance(role, str):
        return {"name": role, "permissions": user.get("permissions") or []}
    return {}


def has_permission(user, name: str) -> bool:
    """
    True when the user's role grants ``name``. Hides buttons only; the
    backend checks every mutating request on its own.
    """
    role = _role_of(user)
    if (role.get("name") or "").strip().lower() in SUPER_ROLES:
        return True
    for permission in role.get("permissions") or []:
        if isinstance(permission, dict):
            if permission.get("isActive", True) is False:
                continue
            label = permission.get("name")
        else:
            label = permission
        if label == name:
            return True
    return False


def permission_required(name: str):
    """Refuse the view with a toast when the console user lacks ``name``."""

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            if not has_permission(getattr(request, "console_user", None), name):
                messages.error(request, "You do not have permission to perform this action.")
                return redirect("festadmin:dashboard")
            return view_func(request, *args, **kwargs)
        return _wrapped_view
    return decorator


class ConsoleSessionMiddleware:
    """Attach the console user and token; send anonymous visitors to sign-in."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        token = request.session.get(TOKEN_SESSION_KEY)
        request.api_token = token
        request.console_user = request.session.get(USER_SESSION_KEY) if token else None
        if not token and not self._is_exempt(request.path):
            query = urlencode({"next": request.get_full_path()})
            return redirect(f"{reverse('sign_in')}?{query}")
        return self.get_response(request)

    def process_exception(self, request: HttpRequest, exception: Exception):
        if isinstance(exception, api.ApiError) and exception.is_unauthorized:
            logger.info("backend rejected the console token on %s", exception.path or request.path)
            clear_credentials(request)
            messages.warning(request, "Your session has expired. Please sign in again.")
            return redirect("sign_in")
        return None

    @staticmethod
    def _is_exempt(path: str) -> bool:
        exempt = (reverse("sign_in"), settings.STATIC_URL)
        return any(path.startswith(prefix) for prefix in exempt)


def console_user(request: HttpRequest) -> dict:
    """Template context processor."""
    return {"console_user": getattr(request, "console_user", None)}


def sign_in(request: HttpRequest) -> HttpResponse:
    """Pass credentials to the backend and keep the returned token in the session."""
    from .forms import SignInForm

    next_url = request.POST.get("next") or request.GET.get("next") or settings.LOGIN_REDIRECT_URL
    if not url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        next_url = settings.LOGIN_REDIRECT_URL

    form = SignInForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        try:
            payload = api.ApiClient().post("/users/login", form.cleaned_data)
        except api.ApiError as e:
            messages.error(request, e.user_message("Invalid username or password"))
        else:
            token = payload.get("token") if isinstance(payload, dict) else None
            if token:
                store_credentials(request, token, payload.get("user"))
                logger.info("console sign-in for %s", form.cleaned_data["username"])
                return redirect(next_url)
            messages.error(request, "The server did not return a session token.")

    return render(request, "festadmin/sign_in.html", {"form": form, "next": next_url})


@require_POST
def sign_out(request: HttpRequest) -> HttpResponse:
    clear_credentials(request)
    messages.info(request, "Signed out.")
    return redirect("sign_in")
