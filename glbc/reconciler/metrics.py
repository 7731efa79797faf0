"""Metrics emitted by every controller."""

from glbc.metrics import MetricDefinition, MetricType

CONTROLLER_LABEL = "controller"
RESULT_LABEL = "result"

RESULT_ERROR = "error"
RESULT_SUCCESS = "success"

RECONCILE_TOTAL = MetricDefinition(
    name="glbc_controller_reconcile_total",
    help="Total number of reconciliations per controller",
    type=MetricType.COUNTER,
    labels=(CONTROLLER_LABEL, RESULT_LABEL),
)

RECONCILE_ERRORS = MetricDefinition(
    name="glbc_controller_reconcile_errors_total",
    help="Total number of reconciliation errors per controller",
    type=MetricType.COUNTER,
    labels=(CONTROLLER_LABEL,),
)

RECONCILE_TIME = MetricDefinition(
    name="glbc_controller_reconcile_time_seconds",
    help="Length of time per reconciliation per controller",
    type=MetricType.HISTOGRAM,
    labels=(CONTROLLER_LABEL,),
    buckets=(
        0.005, 0.01, 0.025, 0.05, 0.1, 0.15, 0.2, 0.25, 0.3, 0.35, 0.4, 0.45,
        0.5, 0.6, 0.7, 0.8, 0.9, 1.0, 1.25, 1.5, 1.75, 2.0, 2.5, 3.0, 3.5, 4.0,
        4.5, 5, 6, 7, 8, 9, 10, 15, 20, 25, 30, 40, 50, 60,
    ),
)

MAX_CONCURRENT_RECONCILES = MetricDefinition(
    name="glbc_controller_max_concurrent_reconciles",
    help="Maximum number of concurrent reconciles per controller",
    type=MetricType.GAUGE,
    labels=(CONTROLLER_LABEL,),
)

ACTIVE_WORKERS = MetricDefinition(
    name="glbc_controller_active_workers",
    help="Number of currently used workers per controller",
    type=MetricType.GAUGE,
    labels=(CONTROLLER_LABEL,),
    non_negative=True,
)
