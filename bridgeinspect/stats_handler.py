"""HTTP handlers for dashboard statistics."""

from __future__ import annotations

from typing import Any, Callable

from .auth import CURRENT_USER_KEY
from .drone_handler import _atoi
from .response import Context, internal_error_with_detail, success, unauthorized

__all__ = ["StatsHandler"]


class StatsHandler:
    """Handlers for the statistics endpoints, backed by a stats use case.

    Each use-case method takes the current user first and raises on failure.
    """

    def __init__(self, stats_use_case: Any) -> None:
        self.stats_use_case = stats_use_case

    def _respond(self, ctx: Context, query: Callable[[Any], Any]) -> None:
        user = ctx.get(CURRENT_USER_KEY)
        if user is None:
            unauthorized(ctx)
            return
        try:
            data = query(user)
        except Exception as exc:  # storage failures are reported to the client
            internal_error_with_detail(ctx, str(exc))
            return
        success(ctx, data)

    def get_overview(self, ctx: Context) -> None:
        self._respond(ctx, self.stats_use_case.get_overview)

    def get_defect_type_distribution(self, ctx: Context) -> None:
        days = _atoi(ctx.default_query("days", "30"))
        self._respond(
            ctx, lambda user: self.stats_use_case.get_defect_type_distribution(user, days)
        )

    def get_defect_trend(self, ctx: Context) -> None:
        days = _atoi(ctx.default_query("days", "7"))
        granularity = ctx.default_query("granularity", "day")
        self._respond(
            ctx, lambda user: self.stats_use_case.get_defect_trend(user, days, granularity)
        )

    def get_bridge_ranking(self, ctx: Context) -> None:
        limit = _atoi(ctx.default_query("limit", "10"))
        order = ctx.default_query("order", "worst")
        self._respond(ctx, lambda user: self.stats_use_case.get_bridge_ranking(user, limit, order))

    def get_recent_detections(self, ctx: Context) -> None:
        limit = _atoi(ctx.default_query("limit", "10"))
        self._respond(ctx, lambda user: self.stats_use_case.get_recent_detections(user, limit))

    def get_high_risk_alerts(self, ctx: Context) -> None:
        severity = ctx.default_query("severity", "")
        limit = _atoi(ctx.default_query("limit", "20"))
        self._respond(
            ctx, lambda user: self.stats_use_case.get_high_risk_alerts(user, severity, limit)
        )