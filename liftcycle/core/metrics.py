from prometheus_client import Counter, Histogram, Info, CollectorRegistry, generate_latest


registry = CollectorRegistry()


http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=registry
)

store_operations_total = Counter(
    'store_operations_total',
    'Total item store operations',
    ['operation', 'outcome'],
    registry=registry
)

store_operation_duration_seconds = Histogram(
    'store_operation_duration_seconds',
    'Item store operation duration in seconds',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=registry
)

workouts_saved_total = Counter(
    'workouts_saved_total',
    'Total finalized workouts saved',
    ['status'],
    registry=registry
)

cycles_closed_total = Counter(
    'cycles_closed_total',
    'Total training cycles closed',
    registry=registry
)

cycle_resets_total = Counter(
    'cycle_resets_total',
    'Total cycle resets caused by a selection change',
    registry=registry
)

analysis_requests_total = Counter(
    'analysis_requests_total',
    'Total cycle analysis requests',
    ['outcome'],
    registry=registry
)

analysis_duration_seconds = Histogram(
    'analysis_duration_seconds',
    'Cycle analysis duration in seconds',
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
    registry=registry
)

app_info = Info(
    'app_info',
    'Application information',
    registry=registry
)


def track_http_request(method: str, endpoint: str, status: int, duration: float | None = None):
    http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
    if duration is not None:
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)


def track_store_operation(operation: str, outcome: str, duration: float):
    store_operations_total.labels(operation=operation, outcome=outcome).inc()
    store_operation_duration_seconds.labels(operation=operation).observe(duration)


def track_workout_saved(status: str):
    workouts_saved_total.labels(status=status).inc()


def track_cycle_closed():
    cycles_closed_total.inc()


def track_cycle_reset():
    cycle_resets_total.inc()


def track_analysis(outcome: str, duration: float | None = None):
    analysis_requests_total.labels(outcome=outcome).inc()
    if duration is not None:
        analysis_duration_seconds.observe(duration)


def get_metrics() -> bytes:
    return generate_latest(registry)


def set_app_info(version: str, environment: str):
    app_info.info({
        'version': version,
        'environment': environment
    })
