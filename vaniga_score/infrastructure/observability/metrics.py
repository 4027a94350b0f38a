"""Prometheus metrics for ledger mutations, score distribution and recompute health"""

from prometheus_client import Counter, Histogram

# Mutation metrics
mutation_counter = Counter(
    "vaniga_ledger_mutations_total",
    "Ledger mutations applied",
    ["operation"],  # create | update | delete
)

score_histogram = Histogram(
    "vaniga_score",
    "Scores produced by recomputation",
    buckets=[350, 400, 450, 500, 550, 600, 650, 700, 750, 800, 850, 900],
)

eligibility_counter = Counter(
    "vaniga_eligibility_evaluations_total",
    "Loan eligibility outcomes after recomputation",
    ["outcome"],  # eligible | ineligible
)

# Derived-state failures (ledger write already committed)
score_recompute_failure_counter = Counter(
    "vaniga_score_recompute_failures_total",
    "Recomputations that fell back to the last persisted score",
)

aggregate_refresh_failure_counter = Counter(
    "vaniga_aggregate_refresh_failures_total",
    "Customer aggregate refreshes that failed after a ledger write",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_mutation(operation: str) -> None:
    mutation_counter.labels(operation=operation).inc()


def record_score(score: int, loan_eligible: bool) -> None:
    """Record score distribution and eligibility outcome"""
    score_histogram.observe(score)
    eligibility_counter.labels(outcome="eligible" if loan_eligible else "ineligible").inc()
