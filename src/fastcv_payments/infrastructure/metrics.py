from prometheus_client import Counter, Histogram


PAYMENTS_CREATED_TOTAL = Counter(
    "payments_created_total",
    "Total number of payments created",
    ["payment_method", "currency"],
)

PAYMENT_STATUS_TRANSITIONS_TOTAL = Counter(
    "payment_status_transitions_total",
    "Total number of payment status transitions",
    ["from_status", "to_status"],
)

PROVIDER_REQUESTS_TOTAL = Counter(
    "payment_provider_requests_total",
    "Total number of requests sent to payment providers",
    ["provider", "operation", "outcome"],
)

PROVIDER_REQUEST_DURATION = Histogram(
    "payment_provider_request_duration_seconds",
    "Payment provider request duration",
    ["provider", "operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

PAYMENT_DURATION_SECONDS = Histogram(
    "payment_duration_seconds",
    "Payment creation duration, provider call included",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

GRPC_REQUEST_DURATION = Histogram(
    "grpc_request_duration_seconds",
    "gRPC request duration",
    ["method", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

GRPC_REQUESTS_TOTAL = Counter(
    "grpc_requests_total",
    "Total number of gRPC requests",
    ["method", "status_code"],
)
