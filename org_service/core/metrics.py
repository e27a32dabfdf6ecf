"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behaviour import the metric and increment it at the point of action.

HTTP metrics are filled in by MetricsMiddleware.  The endpoint label is
the route template (``/organizations/{org_id}``), not the concrete path,
so organization and plan ids never turn into label values.

Domain metrics:

  authz_decisions_total{gate, result}
    One increment per gate evaluation.  ``gate`` is the predicate name
    (super_admin, manage_organization, toggle_member), ``result`` is
    allow or deny.  A spike of denies on one gate is usually a client
    bug or a misconfigured role.

  org_lifecycle_events_total{event}
    Successful mutations: organization_created, member_added,
    subscription_created, ...
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

AUTHZ_DECISIONS = Counter(
    "authz_decisions_total",
    "Authorization gate evaluations by gate and result",
    ["gate", "result"],  # result: allow|deny
)

LIFECYCLE_EVENTS = Counter(
    "org_lifecycle_events_total",
    "Successful organization, membership, plan and subscription mutations",
    ["event"],
)
