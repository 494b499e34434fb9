"""Prometheus counters for auth events."""

from prometheus_client import Counter

LOGINS = Counter("auth_logins_total", "Login attempts by outcome", ["outcome"])
REFRESHES = Counter("auth_refresh_total", "Session token refresh attempts by outcome", ["outcome"])
GATE_REJECTIONS = Counter("auth_gate_rejections_total", "Requests rejected by the authorization gate")
