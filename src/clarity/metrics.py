from prometheus_client import Counter, Histogram

source_endpoints_fetched_total = Counter(
    "clarity_source_endpoints_fetched_total",
    "Number of endpoint records returned by an upstream registry",
    ["source"],
)

source_fetch_failures_total = Counter(
    "clarity_source_fetch_failures_total",
    "Number of failed registry page fetches",
    ["source"],
)

source_rate_limited_total = Counter(
    "clarity_source_rate_limited_total",
    "Number of rate-limited (HTTP 429) registry responses",
    ["source"],
)

probes_total = Counter(
    "clarity_probes_total",
    "Number of endpoint health probes",
    ["outcome"],
)

probe_latency_seconds = Histogram(
    "clarity_probe_latency_seconds",
    "Wall-clock latency of endpoint health probes in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

endpoints_deactivated_total = Counter(
    "clarity_endpoints_deactivated_total",
    "Number of endpoints marked inactive after repeated probe failures",
)

ingestion_errors_total = Counter(
    "clarity_ingestion_errors_total",
    "Number of endpoint records that failed to ingest",
)
