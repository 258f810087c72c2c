"""Middleware checking that the current user owns the requested resource."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .auth import CURRENT_USER_KEY, _is_admin
from .response import (
    Context,
    Handler,
    bad_request,
    forbidden,
    forbidden_with_message,
    internal_error_with_detail,
    not_found,
    unauthorized,
)

__all__ = [
    "bridge_ownership_required",
    "drone_ownership_required",
    "defect_ownership_required",
    "report_ownership_required",
]

_UINT64_LIMIT = 1 << 64
_MISSING_DEFECT_MESSAGES = frozenset({"缺陷不存在", "关联桥梁不存在"})


def _parse_id(text: str) -> int | None:
    """Parse an unsigned decimal id; None when malformed or out of range."""
    if not text or not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    return value if value < _UINT64_LIMIT else None


def _non_admin_user(ctx: Context) -> Any:
    """Return the current user if checks must run; None when the request is settled."""
    user = ctx.get(CURRENT_USER_KEY)
    if user is None:
        unauthorized(ctx)
        ctx.abort()
        return None
    if _is_admin(user):
        return None
    return user


def _repository_ownership(
    find_by_id: Callable[[int], Any],
    *,
    invalid_id: str,
    lookup_failed: str,
    on_missing: Callable[[Context], None],
    on_foreign: Callable[[Context], None],
    context_key: str,
) -> Handler:
    def middleware(ctx: Context) -> None:
        user = _non_admin_user(ctx)
        if user is None:
            return
        resource_id = _parse_id(ctx.param("id"))
        if resource_id is None:
            bad_request(ctx, invalid_id)
            ctx.abort()
            return
        try:
            resource = find_by_id(resource_id)
        except Exception:  # details stay on the server side
            internal_error_with_detail(ctx, lookup_failed)
            ctx.abort()
            return
        if resource is None:
            on_missing(ctx)
            ctx.abort()
            return
        if not resource.is_owned_by(user.id):
            on_foreign(ctx)
            ctx.abort()
            return
        ctx.set(context_key, resource)

    return middleware


def bridge_ownership_required(bridge_repo: Any) -> Handler:
    """Check bridge ownership and store the bridge as ``bridge``."""
    return _repository_ownership(
        bridge_repo.find_by_id,
        invalid_id="无效的桥梁ID",
        lookup_failed="查询桥梁失败",
        on_missing=lambda ctx: not_found(ctx, "桥梁不存在"),
        on_foreign=forbidden,
        context_key="bridge",
    )


def drone_ownership_required(drone_repo: Any) -> Handler:
    """Check drone ownership and store the drone as ``drone``."""
    return _repository_ownership(
        drone_repo.find_by_id,
        invalid_id="无效的无人机ID",
        lookup_failed="查询无人机失败",
        on_missing=lambda ctx: not_found(ctx, "无人机不存在"),
        on_foreign=forbidden,
        context_key="drone",
    )


def report_ownership_required(report_repo: Any) -> Handler:
    """Check report ownership and store the report as ``report``."""
    return _repository_ownership(
        report_repo.find_by_id,
        invalid_id="无效的报表ID",
        lookup_failed="查询报表失败",
        on_missing=lambda ctx: not_found(ctx, "报表"),
        on_foreign=lambda ctx: forbidden_with_message(ctx, "无权访问此报表"),
        context_key="report",
    )


def defect_ownership_required(defect_service: Any) -> Handler:
    """Check ownership of a defect through its bridge and store it as ``defect``.

    ``defect_service.verify_defect_ownership(defect_id, user_id, is_admin)``
    returns the defect or raises; the messages for a missing defect or
    bridge give 404, anything else 403.
    """

    def middleware(ctx: Context) -> None:
        user = _non_admin_user(ctx)
        if user is None:
            return
        defect_id = _parse_id(ctx.param("id"))
        if defect_id is None:
            bad_request(ctx, "无效的缺陷ID")
            ctx.abort()
            return
        try:
            defect = defect_service.verify_defect_ownership(defect_id, user.id, _is_admin(user))
        except Exception as exc:  # the service signals every refusal by raising
            message = str(exc)
            if message in _MISSING_DEFECT_MESSAGES:
                not_found(ctx, message)
            else:
                forbidden(ctx)
            ctx.abort()
            return
        ctx.set("defect", defect)

    return middleware