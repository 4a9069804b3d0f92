"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"bookswap_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"bookswap_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"bookswap_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"bookswap_socketio_events_total",
	"Socket.IO events handled per namespace",
	["namespace", "event"],
)

REALTIME_SUBSCRIPTIONS = Gauge(
	"bookswap_realtime_subscriptions",
	"Live change-feed subscriptions per table",
	["table"],
)

REALTIME_DELIVERIES = Counter(
	"bookswap_realtime_deliveries_total",
	"Change-feed events delivered to subscribers",
	["table", "event"],
)

CHAT_SEND = Counter(
	"bookswap_chat_messages_sent_total",
	"Chat messages persisted",
)

CHAT_READ = Counter(
	"bookswap_chat_mark_read_total",
	"Conversation read markers written",
	["source"],
)

CHAT_AGGREGATIONS = Counter(
	"bookswap_chat_conversation_aggregations_total",
	"Conversation list aggregations",
	["result"],
)

CHAT_OPTIMISTIC_ROLLBACKS = Counter(
	"bookswap_chat_optimistic_rollbacks_total",
	"Optimistic conversation reorders rolled back after a failed send",
)

CHAT_REALTIME_DUPLICATES = Counter(
	"bookswap_chat_realtime_duplicates_total",
	"Realtime message echoes dropped because the id was already present",
)

BOOK_SEARCHES = Counter(
	"bookswap_book_searches_total",
	"Nearby book searches",
	["radius_km"],
)

BOOK_SEARCH_RADIUS_REJECTS = Counter(
	"bookswap_book_search_radius_rejects_total",
	"Rows returned by the distance query but dropped by client-side radius validation",
)

BOOK_REQUESTS = Counter(
	"bookswap_book_requests_total",
	"Book request attempts",
	["result"],
)

GEOCODING_REQUESTS = Counter(
	"bookswap_geocoding_requests_total",
	"Geocoding provider lookups",
	["outcome"],
)

REDIS_UP = Gauge(
	"bookswap_redis_up",
	"Redis readiness probe state",
)

POSTGRES_UP = Gauge(
	"bookswap_postgres_up",
	"Postgres readiness probe state",
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def realtime_subscribed(table: str) -> None:
	REALTIME_SUBSCRIPTIONS.labels(table=table).inc()


def realtime_unsubscribed(table: str) -> None:
	REALTIME_SUBSCRIPTIONS.labels(table=table).dec()


def realtime_delivered(table: str, event: str) -> None:
	REALTIME_DELIVERIES.labels(table=table, event=event).inc()


def inc_chat_send() -> None:
	CHAT_SEND.inc()


def inc_chat_read(source: str) -> None:
	CHAT_READ.labels(source=source).inc()


def inc_chat_aggregation(result: str) -> None:
	CHAT_AGGREGATIONS.labels(result=result).inc()


def inc_chat_rollback() -> None:
	CHAT_OPTIMISTIC_ROLLBACKS.inc()


def inc_chat_duplicate() -> None:
	CHAT_REALTIME_DUPLICATES.inc()


def inc_book_search(radius_km: int) -> None:
	BOOK_SEARCHES.labels(radius_km=str(radius_km)).inc()


def inc_radius_reject(count: int = 1) -> None:
	if count > 0:
		BOOK_SEARCH_RADIUS_REJECTS.inc(count)


def inc_book_request(result: str) -> None:
	BOOK_REQUESTS.labels(result=result).inc()


def inc_geocoding(outcome: str) -> None:
	GEOCODING_REQUESTS.labels(outcome=outcome).inc()


def mark_redis(ok: bool) -> None:
	REDIS_UP.set(1.0 if ok else 0.0)


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1.0 if ok else 0.0)
