"""Request context and the standard JSON response envelope."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from typing import Any, Callable

__all__ = [
    "Response",
    "Context",
    "success",
    "success_with_message",
    "error",
    "error_with_detail",
    "bad_request",
    "unauthorized",
    "unauthorized_with_message",
    "forbidden",
    "forbidden_with_message",
    "not_found",
    "internal_error",
    "internal_error_with_detail",
]


@dataclass
class Response:
    """Standard API envelope; ``data`` and ``error`` are omitted when empty."""

    code: int
    message: str
    data: Any = None
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            body["data"] = self.data
        if self.error:
            body["error"] = self.error
        return body


Handler = Callable[["Context"], None]


@dataclass
class Context:
    """One request and the response written for it."""

    params: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None
    session: dict[str, Any] = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)
    status: int | None = None
    payload: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    file_path: str | None = None
    aborted: bool = False

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``, or None."""
        return self.values.get(key)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def must_get(self, key: str) -> Any:
        """Return the value stored under ``key``; raise KeyError if absent."""
        try:
            return self.values[key]
        except KeyError:
            raise KeyError(f"key {key!r} does not exist") from None

    def param(self, name: str) -> str:
        """Return a path parameter, or an empty string."""
        return self.params.get(name, "")

    def default_query(self, name: str, default: str) -> str:
        """Return a query parameter, or ``default`` when absent."""
        return self.query.get(name, default)

    def json(self, status: int, payload: Any) -> None:
        self.status = int(status)
        self.payload = payload

    def header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def file(self, path: str) -> None:
        """Send the file at ``path``; a missing file gives 404."""
        if Path(path).is_file():
            self.status = int(HTTPStatus.OK)
            self.file_path = str(path)
        else:
            self.status = int(HTTPStatus.NOT_FOUND)
            self.file_path = None

    def abort(self) -> None:
        """Stop the remaining handlers from running."""
        self.aborted = True

    def run(self, *args: Handler) -> Context:
        """Run handlers in order until one aborts."""
        for handler in args:
            if self.aborted:
                break
            handler(self)
        return self


def success(ctx: Context, data: Any) -> None:
    ctx.json(HTTPStatus.OK, Response(HTTPStatus.OK, "success", data).to_dict())


def success_with_message(ctx: Context, message: str, data: Any) -> None:
    ctx.json(HTTPStatus.OK, Response(HTTPStatus.OK, message, data).to_dict())


def error(ctx: Context, code: int, message: str) -> None:
    ctx.json(code, Response(int(code), message).to_dict())


def error_with_detail(ctx: Context, code: int, message: str, detail: str) -> None:
    ctx.json(code, Response(int(code), message, error=detail).to_dict())


def bad_request(ctx: Context, message: str) -> None:
    error(ctx, HTTPStatus.BAD_REQUEST, message)


def unauthorized(ctx: Context) -> None:
    error(ctx, HTTPStatus.UNAUTHORIZED, "未登录或登录已过期")


def unauthorized_with_message(ctx: Context, message: str) -> None:
    error(ctx, HTTPStatus.UNAUTHORIZED, message)


def forbidden(ctx: Context) -> None:
    error(ctx, HTTPStatus.FORBIDDEN, "权限不足")


def forbidden_with_message(ctx: Context, message: str) -> None:
    error(ctx, HTTPStatus.FORBIDDEN, message)


def not_found(ctx: Context, resource: str) -> None:
    error(ctx, HTTPStatus.NOT_FOUND, resource + "不存在")


def internal_error(ctx: Context) -> None:
    error(ctx, HTTPStatus.INTERNAL_SERVER_ERROR, "服务器内部错误")


def internal_error_with_detail(ctx: Context, detail: str) -> None:
    error_with_detail(ctx, HTTPStatus.INTERNAL_SERVER_ERROR, "服务器内部错误", detail)