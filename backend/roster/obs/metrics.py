"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, Summary

REQUEST_COUNTER = Counter(
	"roster_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"roster_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

AUTH_FAILURES = Counter(
	"roster_auth_failures_total",
	"Requests rejected during caller resolution",
	["reason"],
)

MEMBERSHIP_OPS = Counter(
	"roster_membership_ops_total",
	"Membership ledger operations",
	["op", "result"],
)

INVITES = Counter(
	"roster_invites_total",
	"Team invitation lifecycle transitions",
	["result"],
)

JOIN_REQUESTS = Counter(
	"roster_join_requests_total",
	"Join request lifecycle transitions",
	["result"],
)

APPLICATIONS = Counter(
	"roster_applications_total",
	"Team application lifecycle transitions",
	["result"],
)

DISCOVERY_QUERIES = Counter(
	"roster_discovery_queries_total",
	"Nearby free-agent discovery queries",
	["result"],
)

DISCOVERY_RESULTS = Summary(
	"roster_discovery_results",
	"Nearby free-agent discovery result sizes",
)

NOTIFICATIONS = Counter(
	"roster_notifications_total",
	"Notification emission attempts",
	["type", "result"],
)

ACTION_FAILURES = Counter(
	"roster_action_failures_total",
	"Team actions that returned a failure result",
	["action", "code"],
)

BACKGROUND_RUNS = Counter(
	"roster_jobs_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"roster_jobs_duration_seconds",
	"Background job duration",
	["name"],
	buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 15.0, 30.0, 60.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_auth_failure(reason: str) -> None:
	AUTH_FAILURES.labels(reason=reason).inc()


def inc_membership_op(op: str, result: str = "ok") -> None:
	MEMBERSHIP_OPS.labels(op=op, result=result).inc()


def inc_invite(result: str) -> None:
	INVITES.labels(result=result).inc()


def inc_join_request(result: str) -> None:
	JOIN_REQUESTS.labels(result=result).inc()


def inc_application(result: str) -> None:
	APPLICATIONS.labels(result=result).inc()


def observe_discovery(result: str, count: int = 0) -> None:
	DISCOVERY_QUERIES.labels(result=result).inc()
	DISCOVERY_RESULTS.observe(count)


def inc_notification(type: str, result: str) -> None:
	NOTIFICATIONS.labels(type=type, result=result).inc()


def inc_action_failure(action: str, code: str) -> None:
	ACTION_FAILURES.labels(action=action, code=code).inc()
