import time
from typing import Optional
from fastapi import FastAPI, Request, Response
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# --- Metric objects ---
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["path", "method", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_latency_seconds",
    "Request latency seconds",
    labelnames=["path", "method"],
)
REGISTRY_OPS = Counter(
    "registry_operations_total",
    "Registry operations by outcome (ok or the error class name)",
    labelnames=["op", "outcome"],
)
RECORDS_G = Gauge("registry_records", "Characters currently stored")
LAST_POPULATION_AGE_G = Gauge(
    "registry_last_population_age_seconds",
    "Seconds since last successful population (unset => never)",
)


# --- Helpers for routes ---
def record_op(op: str, outcome: str = "ok") -> None:
    REGISTRY_OPS.labels(op=op, outcome=outcome).inc()


def observe_registry(count: int, age: Optional[float]) -> None:
    RECORDS_G.set(count)
    if age is not None:
        LAST_POPULATION_AGE_G.set(age)


# --- Installation: middleware + /metrics endpoint ---
def install(app: FastAPI) -> None:
    @app.middleware("http")
    async def _metrics_mw(request: Request, call_next):
        t0 = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            # label by route template so /update/{id} stays one series
            route = request.scope.get("route")
            path = getattr(route, "path", request.url.path)
            REQUEST_LATENCY.labels(path=path, method=request.method).observe(
                time.perf_counter() - t0
            )
            REQUESTS.labels(path=path, method=request.method, status=str(status)).inc()

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
