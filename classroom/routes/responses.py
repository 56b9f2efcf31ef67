"""Translate handler results into HTTP responses: flash messages and redirects."""

from typing import Any, Callable, Dict, Optional
from urllib.parse import urlsplit

import structlog
from fastapi import Request
from fastapi.responses import RedirectResponse, Response

from classroom.services.results import ErrorKind, HandlerResult

logger = structlog.get_logger()

DEFAULT_BACK_PATH = "/users/me"


def flash(request: Request, kind: str, message: str):
    messages = dict(request.session.get("flash") or {})
    messages[kind] = message
    request.session["flash"] = messages


def pop_flash(request: Request) -> Dict[str, str]:
    return request.session.pop("flash", None) or {}


def back_path(request: Request) -> str:
    """Path of the referring page on this site, or the profile page."""
    referer = request.headers.get("referer")
    if not referer:
        return DEFAULT_BACK_PATH
    parts = urlsplit(referer)
    if parts.netloc and parts.netloc != request.url.netloc:
        return DEFAULT_BACK_PATH
    path = parts.path or DEFAULT_BACK_PATH
    return f"{path}?{parts.query}" if parts.query else path


def redirect_back(request: Request) -> RedirectResponse:
    return RedirectResponse(back_path(request), status_code=303)


def respond(
    request: Request,
    result: HandlerResult,
    on_success: Callable[[Any], Any],
    on_invalid: Optional[Callable[[HandlerResult], Response]] = None,
):
    if result.ok:
        return on_success(result.value)

    if result.error == ErrorKind.VALIDATION and on_invalid is not None:
        return on_invalid(result)

    logger.warning("Request failed", error_kind=result.error.value, message=result.message, path=request.url.path)
    flash(request, "error", result.message or "Something went wrong")
    return redirect_back(request)
