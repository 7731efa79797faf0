"""Metrics describing the lifecycle of TLS certificates."""

from glbc.metrics import MetricDefinition, MetricType

ISSUER_LABEL = "issuer"
HOSTNAME_LABEL = "hostname"
RESULT_LABEL = "result"
RESULT_SUCCEEDED = "succeeded"
RESULT_FAILED = "failed"

CERTIFICATE_PENDING_REQUEST_COUNT = MetricDefinition(
    name="glbc_tls_certificate_pending_request_count",
    help="GLBC TLS certificate pending request count",
    type=MetricType.GAUGE,
    labels=(ISSUER_LABEL, HOSTNAME_LABEL),
    non_negative=True,
)

CERTIFICATE_REQUEST_TOTAL = MetricDefinition(
    name="glbc_tls_certificate_request_total",
    help="GLBC TLS certificate total number of requests",
    type=MetricType.COUNTER,
    labels=(ISSUER_LABEL, RESULT_LABEL),
)

CERTIFICATE_REQUEST_ERRORS = MetricDefinition(
    name="glbc_tls_certificate_request_errors_total",
    help="GLBC TLS certificate total number of request errors",
    type=MetricType.COUNTER,
    labels=(ISSUER_LABEL,),
)

CERTIFICATE_ISSUANCE_DURATION = MetricDefinition(
    name="glbc_tls_certificate_issuance_duration_seconds",
    help="GLBC TLS certificate issuance duration",
    type=MetricType.HISTOGRAM,
    labels=(ISSUER_LABEL, RESULT_LABEL),
    buckets=(1, 5, 10, 15, 30, 45, 60, 120, 300),
)

CERTIFICATE_SECRET_COUNT = MetricDefinition(
    name="glbc_tls_certificate_secret_count",
    help="GLBC TLS certificate secret count",
    type=MetricType.GAUGE,
    labels=(ISSUER_LABEL, HOSTNAME_LABEL),
    non_negative=True,
)
