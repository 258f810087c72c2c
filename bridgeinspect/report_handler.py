"""HTTP handlers for inspection reports."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .auth import get_current_user
from .drone_handler import _bind_json, _BindError, _parse_int
from .ownership import _parse_id
from .response import (
    Context,
    bad_request,
    internal_error,
    internal_error_with_detail,
    not_found,
    success,
    success_with_message,
)

__all__ = ["ReportHandler", "REPORT_STATUS_COMPLETED"]

REPORT_STATUS_COMPLETED = "completed"

_INT_QUERY_FIELDS = ("page", "page_size", "bridge_id")
_TEXT_QUERY_FIELDS = ("report_type",)


def _bind_query(query: Mapping[str, str]) -> dict[str, Any]:
    """Convert the list query parameters to their types; empty numbers count as zero."""
    params: dict[str, Any] = {}
    for name in _INT_QUERY_FIELDS:
        if name not in query:
            continue
        text = query[name]
        if text == "":
            params[name] = 0
            continue
        value = _parse_int(text)
        if value is None:
            raise _BindError(f"{name}: invalid integer {text!r}")
        params[name] = value
    for name in _TEXT_QUERY_FIELDS:
        if name in query:
            params[name] = query[name]
    return params


class ReportHandler:
    """Handlers for the report endpoints, backed by a report use case.

    The use case provides ``create_report(req, user)``, ``get_report(id, user)``,
    ``list_reports(params, user)`` and ``delete_report(id, user)``, raising on
    failure.
    """

    def __init__(self, report_use_case: Any) -> None:
        self.report_use_case = report_use_case

    def create_report(self, ctx: Context) -> None:
        user = get_current_user(ctx)
        try:
            req = _bind_json(ctx)
        except _BindError as exc:
            bad_request(ctx, f"参数错误：{exc}")
            return
        req["user_id"] = user.id
        try:
            report = self.report_use_case.create_report(req, user)
        except Exception as exc:  # use-case refusals go back to the client
            bad_request(ctx, str(exc))
            return
        success_with_message(ctx, "报表生成任务已创建，正在后台生成中", report)

    def get_report(self, ctx: Context) -> None:
        report = ctx.get("report")
        if report is not None:
            success(ctx, report)
            return
        report_id = _parse_id(ctx.param("id"))
        if report_id is None:
            bad_request(ctx, "报表ID格式错误")
            return
        user = get_current_user(ctx)
        try:
            found = self.report_use_case.get_report(report_id, user)
        except Exception:  # any lookup failure reads as missing
            not_found(ctx, "报表")
            return
        success(ctx, found)

    def list_reports(self, ctx: Context) -> None:
        try:
            params = _bind_query(ctx.query)
        except _BindError as exc:
            bad_request(ctx, f"参数错误：{exc}")
            return
        user = get_current_user(ctx)
        try:
            result = self.report_use_case.list_reports(params, user)
        except Exception as exc:  # storage failures are reported to the client
            internal_error_with_detail(ctx, str(exc))
            return
        success(ctx, result)

    def download_report(self, ctx: Context) -> None:
        report_id = _parse_id(ctx.param("id"))
        if report_id is None:
            bad_request(ctx, "报表ID格式错误")
            return
        user = get_current_user(ctx)
        try:
            report = self.report_use_case.get_report(report_id, user)
        except Exception:  # any lookup failure reads as missing
            not_found(ctx, "报表")
            return
        if report.status != REPORT_STATUS_COMPLETED:
            bad_request(ctx, "报表尚未生成完成，请稍后重试")
            return
        if not report.file_path:
            internal_error(ctx)
            return
        ctx.header("Content-Description", "File Transfer")
        ctx.header("Content-Transfer-Encoding", "binary")
        ctx.header("Content-Disposition", f"attachment; filename={report.report_name}.pdf")
        ctx.header("Content-Type", "application/pdf")
        ctx.file(report.file_path)

    def delete_report(self, ctx: Context) -> None:
        report_id = _parse_id(ctx.param("id"))
        if report_id is None:
            bad_request(ctx, "报表ID格式错误")
            return
        user = get_current_user(ctx)
        try:
            self.report_use_case.delete_report(report_id, user)
        except Exception as exc:  # use-case refusals go back to the client
            bad_request(ctx, str(exc))
            return
        success_with_message(ctx, "删除成功", None)