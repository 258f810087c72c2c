"""HTTP handlers for drone management."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .auth import CURRENT_USER_KEY
from .ownership import _parse_id
from .response import (
    Context,
    bad_request,
    internal_error_with_detail,
    success,
    unauthorized,
)

__all__ = ["DroneHandler"]

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


class _BindError(ValueError):
    """Raised when a request body or query cannot be bound."""


def _parse_int(text: str) -> int | None:
    """Parse a signed decimal integer clamped to 64 bits; None when malformed."""
    if not _INT_RE.fullmatch(text):
        return None
    return max(_INT64_MIN, min(_INT64_MAX, int(text)))


def _atoi(text: str) -> int:
    """Parse a query integer; malformed input counts as zero."""
    value = _parse_int(text)
    return 0 if value is None else value


def _bind_json(ctx: Context) -> dict[str, Any]:
    """Return a copy of the JSON object in the request body."""
    if ctx.body is None:
        raise _BindError("empty request body")
    if not isinstance(ctx.body, Mapping):
        raise _BindError("request body must be a JSON object")
    return dict(ctx.body)


def _drone_response(drone: Any) -> dict[str, Any]:
    return {
        "id": drone.id,
        "name": drone.name,
        "model": drone.model,
        "stream_url": drone.stream_url,
        "user_id": drone.user_id,
        "created_at": drone.created_at,
        "updated_at": drone.updated_at,
    }


class DroneHandler:
    """Handlers for the drone endpoints, backed by a drone use case.

    The use case provides ``create_drone(req)``, ``get_drone(id)``,
    ``list_drones(user, page, page_size)``, ``update_drone(id, req)`` and
    ``delete_drone(id, user)``, raising on failure.
    """

    def __init__(self, drone_use_case: Any) -> None:
        self.drone_use_case = drone_use_case

    def create_drone(self, ctx: Context) -> None:
        try:
            req = _bind_json(ctx)
        except _BindError as exc:
            bad_request(ctx, f"参数错误: {exc}")
            return
        user = ctx.get(CURRENT_USER_KEY)
        if user is None:
            unauthorized(ctx)
            return
        req["user_id"] = user.id
        try:
            drone = self.drone_use_case.create_drone(req)
        except Exception as exc:  # use-case refusals go back to the client
            bad_request(ctx, str(exc))
            return
        success(ctx, {"id": drone.id, "name": drone.name, "model": drone.model})

    def get_drone(self, ctx: Context) -> None:
        drone = ctx.get("drone")
        if drone is not None:
            success(ctx, _drone_response(drone))
            return
        drone_id = _parse_id(ctx.param("id"))
        if drone_id is None:
            bad_request(ctx, "无效的无人机ID")
            return
        try:
            found = self.drone_use_case.get_drone(drone_id)
        except Exception as exc:  # use-case refusals go back to the client
            bad_request(ctx, str(exc))
            return
        success(ctx, found)

    def list_drones(self, ctx: Context) -> None:
        user = ctx.get(CURRENT_USER_KEY)
        if user is None:
            unauthorized(ctx)
            return
        page = _atoi(ctx.default_query("page", "1"))
        page_size = _atoi(ctx.default_query("page_size", "10"))
        try:
            drones = self.drone_use_case.list_drones(user, page, page_size)
        except Exception:  # details stay on the server side
            internal_error_with_detail(ctx, "查询失败")
            return
        success(ctx, drones)

    def update_drone(self, ctx: Context) -> None:
        drone_id = _parse_id(ctx.param("id"))
        if drone_id is None:
            bad_request(ctx, "无效的无人机ID")
            return
        try:
            req = _bind_json(ctx)
        except _BindError as exc:
            bad_request(ctx, f"参数错误: {exc}")
            return
        try:
            drone = self.drone_use_case.update_drone(drone_id, req)
        except Exception as exc:  # use-case refusals go back to the client
            bad_request(ctx, str(exc))
            return
        success(ctx, {"id": drone.id, "name": drone.name})

    def delete_drone(self, ctx: Context) -> None:
        drone_id = _parse_id(ctx.param("id"))
        if drone_id is None:
            bad_request(ctx, "无效的无人机ID")
            return
        user = ctx.get(CURRENT_USER_KEY)
        if user is None:
            unauthorized(ctx)
            return
        try:
            self.drone_use_case.delete_drone(drone_id, user)
        except Exception as exc:  # use-case refusals go back to the client
            bad_request(ctx, str(exc))
            return
        success(ctx, {"message": "删除成功"})