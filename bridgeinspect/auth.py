"""Authentication, authorisation and CORS middleware."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from http import HTTPStatus
from typing import Any

from .config import Config
from .response import (
    Context,
    Handler,
    bad_request,
    forbidden,
    forbidden_with_message,
    internal_error,
    internal_error_with_detail,
    not_found,
    unauthorized,
    unauthorized_with_message,
)

__all__ = [
    "RecordNotFound",
    "CORSSettings",
    "cors_middleware",
    "auth_required",
    "admin_required",
    "check_resource_ownership",
    "get_current_user",
]

CURRENT_USER_KEY = "current_user"


class RecordNotFound(LookupError):
    """Raised by a lookup when the requested record does not exist."""


def _is_admin(user: Any) -> bool:
    """Return whether ``user`` is an administrator; TypeError if it cannot say."""
    check = getattr(user, "is_admin", None)
    if check is None:
        raise TypeError(f"{type(user).__name__} has no is_admin")
    return bool(check() if callable(check) else check)


@dataclass(frozen=True)
class CORSSettings:
    """Cross-origin settings; calling an instance applies them to a request.

    The request's ``Origin`` header and method are read from the context
    values ``origin`` and ``method``.
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Origin", "Content-Type", "Accept", "Authorization")
    expose_headers: tuple[str, ...] = ("Content-Length",)
    allow_credentials: bool = False
    max_age: timedelta = field(default=timedelta(hours=12))

    @property
    def allow_all_origins(self) -> bool:
        return "*" in self.allow_origins

    def allows_origin(self, origin: str) -> bool:
        return self.allow_all_origins or origin in self.allow_origins

    def _common_headers(self, origin: str) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.allow_all_origins:
            headers["Access-Control-Allow-Origin"] = "*"
        else:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    def response_headers(self, origin: str) -> dict[str, str]:
        """Headers added to an ordinary cross-origin response."""
        headers = self._common_headers(origin)
        if self.expose_headers:
            headers["Access-Control-Expose-Headers"] = ",".join(self.expose_headers)
        return headers

    def preflight_headers(self, origin: str) -> dict[str, str]:
        """Headers added to the answer to a preflight request."""
        headers = self._common_headers(origin)
        headers["Access-Control-Allow-Methods"] = ",".join(self.allow_methods)
        headers["Access-Control-Allow-Headers"] = ",".join(self.allow_headers)
        headers["Access-Control-Max-Age"] = str(int(self.max_age.total_seconds()))
        return headers

    def __call__(self, ctx: Context) -> None:
        origin = ctx.get("origin")
        if not origin:
            return
        if not self.allows_origin(origin):
            ctx.status = int(HTTPStatus.FORBIDDEN)
            ctx.abort()
            return
        if str(ctx.get("method") or "").upper() == "OPTIONS":
            ctx.headers.update(self.preflight_headers(origin))
            ctx.status = int(HTTPStatus.NO_CONTENT)
            ctx.abort()
            return
        ctx.headers.update(self.response_headers(origin))


def cors_middleware(cfg: Config) -> CORSSettings:
    """Build the CORS middleware from the configured origins and credentials flag."""
    return CORSSettings(
        allow_origins=tuple(cfg.cors.allow_origins),
        allow_credentials=cfg.cors.allow_credentials,
    )


def auth_required(find_user: Callable[[Any], Any]) -> Handler:
    """Require a logged-in session and store its user as ``current_user``.

    ``find_user`` receives the session's user id and returns the user or
    raises RecordNotFound.
    """

    def middleware(ctx: Context) -> None:
        user_id = ctx.session.get("user_id")
        if user_id is None:
            unauthorized(ctx)
            ctx.abort()
            return
        try:
            user = find_user(user_id)
        except RecordNotFound:
            unauthorized_with_message(ctx, "用户不存在")
            ctx.abort()
            return
        except Exception as exc:  # storage failures are reported to the client
            internal_error_with_detail(ctx, str(exc))
            ctx.abort()
            return
        ctx.set(CURRENT_USER_KEY, user)

    return middleware


def admin_required() -> Handler:
    """Require the current user to be an administrator."""

    def middleware(ctx: Context) -> None:
        user = ctx.get(CURRENT_USER_KEY)
        if user is None:
            unauthorized(ctx)
            ctx.abort()
            return
        try:
            admin = _is_admin(user)
        except TypeError:
            internal_error(ctx)
            ctx.abort()
            return
        if not admin:
            forbidden(ctx)
            ctx.abort()

    return middleware


def check_resource_ownership(
    owner_lookups: Mapping[str, Callable[[str], Any]], resource_type: str
) -> Handler:
    """Allow administrators, or users owning the resource named by the ``id`` parameter.

    ``owner_lookups`` maps a resource type to a function that takes the
    resource id and returns its owner's user id, raising RecordNotFound
    when there is no such resource.
    """

    def middleware(ctx: Context) -> None:
        user = ctx.must_get(CURRENT_USER_KEY)
        if _is_admin(user):
            return
        resource_id = ctx.param("id")
        if not resource_id:
            bad_request(ctx, "资源ID不能为空")
            ctx.abort()
            return
        lookup = owner_lookups.get(resource_type)
        if lookup is None:
            internal_error(ctx)
            ctx.abort()
            return
        try:
            owner_id = lookup(resource_id)
        except RecordNotFound:
            not_found(ctx, resource_type)
            ctx.abort()
            return
        except Exception as exc:  # storage failures are reported to the client
            internal_error_with_detail(ctx, str(exc))
            ctx.abort()
            return
        if owner_id != user.id:
            forbidden_with_message(ctx, "无权访问此资源")
            ctx.abort()

    return middleware


def get_current_user(ctx: Context) -> Any:
    """Return the authenticated user; KeyError if authentication did not run."""
    return ctx.must_get(CURRENT_USER_KEY)