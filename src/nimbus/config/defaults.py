"""Default values and well-known file names for Nimbus services."""

# Files under a service root
SERVICE_DEFINITION_FILE = "service.yaml"
CLOUD_CONFIGURATION_FILE = "service.cloud.yaml"
LOCAL_CONFIGURATION_FILE = "service.local.yaml"
DEPLOYMENT_SETTINGS_FILE = "deploymentSettings.json"
CLOUD_PACKAGE_FILE = "cloud_package.cspkg"
PROJECT_CONFIG_FILE = "nimbus.yaml"

# Global settings directory (under the user's home)
GLOBAL_CONFIG_DIR = ".nimbus"
GLOBAL_CONFIG_FILE = "config.yaml"

# Directories produced by a running runtime (iisnode writes <script>.logs)
DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = ("*.logs",)

DEFAULT_LOCATION = "East US"
DEFAULT_UPLOAD_CONTAINER = "mydeployments"

# Completion waiter defaults
DEFAULT_WAIT_POLICY: dict[str, float | int | None] = {
    "interval": 5.0,  # seconds
    "backoff": 1.0,
    "max_interval": 30.0,  # seconds
    "max_attempts": 360,
    "timeout": None,  # seconds, None means only max_attempts applies
}

# Cloud configuration settings that receive the storage connection string
STORAGE_CONNECTION_STRING_SETTINGS: tuple[str, ...] = (
    "Microsoft.WindowsAzure.Plugins.Diagnostics.ConnectionString",
    "Microsoft.WindowsAzure.Plugins.Caching.ConfigStoreConnectionString",
)

STORAGE_CONNECTION_STRING_TEMPLATE = (
    "DefaultEndpointsProtocol=https;AccountName={name};AccountKey={key}"
)

# Role environment variables written by runtime manifest patching
RUNTIME_URL_VARIABLE = "RUNTIMEURL"
RUNTIME_OVERRIDE_URL_VARIABLE = "RUNTIMEOVERRIDEURL"

# Environment variable to PublishSettings field mapping
ENV_VAR_MAP: dict[str, str] = {
    "subscription_id": "NIMBUS_SUBSCRIPTION_ID",
    "management_certificate": "NIMBUS_MANAGEMENT_CERTIFICATE",
    "location": "NIMBUS_LOCATION",
    "affinity_group": "NIMBUS_AFFINITY_GROUP",
    "storage_account": "NIMBUS_STORAGE_ACCOUNT",
    "slot": "NIMBUS_SLOT",
    "runtime_manifest": "NIMBUS_RUNTIME_MANIFEST",
}
