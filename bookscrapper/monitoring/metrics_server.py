from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    generate_latest,
    Counter,
    Gauge,
    Histogram,
)

# -------------------------
# Request Metrics
# -------------------------

REQUEST_COUNT = Counter(
    "bookscrapper_requests_total",
    "Total HTTP requests",
    ["website"],
)

REQUEST_LATENCY = Histogram(
    "bookscrapper_request_latency_seconds",
    "Time to fetch a page",
    ["website"],
)

# -------------------------
# Ingestion Metrics
# -------------------------

ITEMS_ANALYZED = Counter(
    "bookscrapper_items_analyzed_total",
    "Queue items fetched and analyzed",
    ["website"],
)

ITEMS_ERRORED = Counter(
    "bookscrapper_items_errored_total",
    "Queue items or pages that failed",
    ["website", "reason"],
)

ITEMS_SKIPPED = Counter(
    "bookscrapper_items_skipped_total",
    "Remote items skipped because they are already known",
    ["website"],
)

RECORDS_MATCHED = Counter(
    "bookscrapper_records_matched_total",
    "Candidate records produced by matchers",
    ["website", "kind"],
)

# -------------------------
# Queue Metrics
# -------------------------

QUEUE_PENDING = Gauge(
    "bookscrapper_queue_pending",
    "Number of NEW queue items",
    ["website"],
)


# -------------------------
# /metrics endpoint
# -------------------------

async def metrics_handler(request):
    data = generate_latest()

    # aiohttp rejects charset inside content_type
    ctype = CONTENT_TYPE_LATEST.split(";")[0]

    return web.Response(
        body=data,
        content_type=ctype
    )


async def start_metrics_server(port=8000):
    app = web.Application()
    app.router.add_get("/metrics", metrics_handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()

    return runner, site
