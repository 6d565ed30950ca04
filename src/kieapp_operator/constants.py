"""Constants for the KieApp Operator."""

# API Group
API_GROUP = "app.kiegroup.org"
API_VERSION = "v2"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_KIEAPP = "KieApp"

# Environments
ENV_STANDALONE_DASHBUILDER = "rhpam-standalone-dashbuilder"

# Labels
LABEL_MANAGED_BY = f"{API_GROUP}/managed-by"
LABEL_BACKUP_OF = f"{API_GROUP}/backup-of"
LABEL_INJECT_CA_BUNDLE = "config.openshift.io/inject-trusted-cabundle"
LABEL_KIE_SERVER_STATE = "services.server.kie.org/kie-server-state"
KIE_SERVER_STATE_DETACHED = "DETACHED"

# Credentials
KEYSTORE_SECRET_FORMAT = "{}-app-secret"
KEYSTORE_KEY = "keystore.jks"
TRUSTSTORE_SECRET_SUFFIX = "-truststore"
TRUSTSTORE_KEY = "truststore.jks"
TRUSTSTORE_PASSWORD = "changeit"
CA_BUNDLE_KEY = "ca-bundle.crt"
CA_BUNDLE_CONFIG_MAP_SUFFIX = "-kieapp-ca-bundle"

# Images
DEFAULT_IMAGE_REGISTRY = "registry.redhat.io"
DEFAULT_VERSION = "7.13.1"
DATAGRID_CONTEXT = "jboss-datagrid-7"
AMQ_BROKER_CONTEXT = "amq-broker-7"
AMQ_BROKER_SCALEDOWN_CONTEXT = "amq-broker-7-tech-preview"
DATABASE_CONTEXT = "rhscl"
DATABASE_IMAGES = ("postgresql", "mysql")

# Status
MAX_CONDITIONS = 30

# Phases
PHASE_CONFIGURATION_ERROR = "ConfigurationError"
PHASE_MISSING_DEPENDENCY = "MissingDependency"
PHASE_PROVISIONING = "Provisioning"
PHASE_DEPLOYED = "Deployed"
PHASE_FAILED = "Failed"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_ROUTES_PENDING = "RoutesPending"
EVENT_REASON_PROVISIONING = "Provisioning"
EVENT_REASON_DEPLOYED = "Deployed"
EVENT_REASON_CLEANED_UP = "CleanedUp"

# Condition Reasons
REASON_CONFIGURATION_ERROR = "ConfigurationError"
REASON_MISSING_DEPENDENCY = "MissingDependency"
REASON_UNKNOWN = "Unknown"
REASON_ROUTES_PENDING = "RoutesPending"
REASON_CA_BUNDLE_UNAVAILABLE = "CABundleUnavailable"
REASON_CONFLICT = "Conflict"
REASON_STATUS_STALE = "StatusStale"
