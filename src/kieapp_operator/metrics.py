"""Prometheus metrics for the KieApp Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "kieapp_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "kieapp_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

# Managed resource metrics
resource_operations_total = Counter(
    "kieapp_operator_resource_operations_total",
    "Total number of create/update/delete operations on managed resources",
    ["kind", "operation", "result"],
)

# Configuration drift detection metrics
drift_detected_total = Counter(
    "kieapp_operator_drift_detected_total",
    "Total number of deployed resources found out of sync with the requested state",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "kieapp_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "kieapp_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

requeue_total = Counter(
    "kieapp_operator_requeue_total",
    "Total number of requeue requests",
    ["reason"],
)

# Credential metrics
credentials_generated_total = Counter(
    "kieapp_operator_credentials_generated_total",
    "Total number of generated keystores and truststores",
    ["purpose"],
)

image_tags_created_total = Counter(
    "kieapp_operator_image_tags_created_total",
    "Total number of image stream tags created",
)
