"""
Constants used throughout the SFTPGo operator.

This module defines all constant values used by the operator including:
- Custom resource group, version and plurals
- Annotations and status phases
- SFTPGo API defaults, discriminator values and retry tuning
"""

import logging
import os

# Custom resource coordinates
API_GROUP = "sftpgo.io"
API_VERSION = "v1"

PLURAL_USERS = "sftpgousers"
PLURAL_FOLDERS = "sftpgofolders"
PLURAL_GROUPS = "sftpgogroups"
PLURAL_EVENT_ACTIONS = "sftpgoeventactions"
PLURAL_EVENT_RULES = "sftpgoeventrules"
PLURAL_DEFENDER_ENTRIES = "sftpgodefenderentries"
PLURAL_ALLOWLIST_ENTRIES = "sftpgoallowlistentries"
PLURAL_RLSAFELIST_ENTRIES = "sftpgoratelimitsafelistentries"
PLURAL_ROLES = "sftpgoroles"
PLURAL_ADMINS = "sftpgoadmins"
PLURAL_LICENSES = "sftpgolicenses"

# Annotation that makes create adopt an existing SFTPGo object instead
IMPORT_ANNOTATION = "sftpgo.io/import"

# Status phase constants
PHASE_PENDING = "Pending"
PHASE_RECONCILING = "Reconciling"
PHASE_READY = "Ready"
PHASE_FAILED = "Failed"
PHASE_DEGRADED = "Degraded"
ALL_PHASES = (PHASE_PENDING, PHASE_RECONCILING, PHASE_READY, PHASE_FAILED, PHASE_DEGRADED)

# SFTPGo API defaults
DEFAULT_SFTPGO_HOST = "http://localhost:8080"
DEFAULT_REQUEST_TIMEOUT = 20
API_PREFIX = "/api/v2"
API_KEY_HEADER = "X-SFTPGO-API-KEY"
PAGE_SIZE = 100
MAX_HEADER_ENV_ENTRIES = 10
# Tokens are refreshed this many seconds before they expire
TOKEN_EXPIRY_MARGIN = 120

# Edition flag
EDITION_OPEN_SOURCE = 0
EDITION_ENTERPRISE = 1

# Deadlock retry tuning (MySQL error 1213 surfaced by the SFTPGo data provider)
MAX_RETRIES = 3
RETRY_BASE_DELAY_MS = 200
RETRY_MAX_DELAY_MS = 1000
RETRY_JITTER_PERCENT = 20
DEADLOCK_MARKERS = ("error 1213", "deadlock found when trying to get lock")

# Secret statuses understood by the SFTPGo KMS layer
SECRET_STATUS_PLAIN = "Plain"
ENCRYPTED_SECRET_STATUSES = (
    "Secretbox",
    "AES-256-GCM",
    "GCP",
    "AWS",
    "VaultTransit",
    "AzureKeyVault",
)

# Filesystem providers
FS_PROVIDER_LOCAL = 0
FS_PROVIDER_S3 = 1
FS_PROVIDER_GCS = 2
FS_PROVIDER_AZURE_BLOB = 3
FS_PROVIDER_CRYPT = 4
FS_PROVIDER_SFTP = 5
FS_PROVIDER_HTTP = 6

# Event action types
ACTION_TYPE_HTTP = 1
ACTION_TYPE_COMMAND = 2
ACTION_TYPE_EMAIL = 3
ACTION_TYPE_BACKUP = 4
ACTION_TYPE_USER_QUOTA_RESET = 5
ACTION_TYPE_FOLDER_QUOTA_RESET = 6
ACTION_TYPE_TRANSFER_QUOTA_RESET = 7
ACTION_TYPE_DATA_RETENTION_CHECK = 8
ACTION_TYPE_FILESYSTEM = 9
ACTION_TYPE_METADATA_CHECK = 10
ACTION_TYPE_PASSWORD_EXPIRATION_CHECK = 11
ACTION_TYPE_USER_EXPIRATION_CHECK = 12
ACTION_TYPE_IDP_ACCOUNT_CHECK = 13
ACTION_TYPE_USER_INACTIVITY_CHECK = 14

# Filesystem action types
FS_ACTION_RENAME = 1
FS_ACTION_DELETE = 2
FS_ACTION_MKDIRS = 3
FS_ACTION_EXIST = 4
FS_ACTION_COMPRESS = 5
FS_ACTION_COPY = 6

# Event rule trigger fired on identity provider logins
RULE_TRIGGER_IDP_LOGIN = 7

# IP list types
IP_LIST_ALLOWLIST = 1
IP_LIST_DEFENDER = 2
IP_LIST_RATE_LIMITER_SAFELIST = 3

IP_LIST_MODE_ALLOW = 1
IP_LIST_MODE_DENY = 2

# Level used when logging handler invocations
HANDLER_ENTRY_LOG_LEVEL = getattr(
    logging, os.getenv("HANDLER_ENTRY_LOG_LEVEL", "INFO").upper(), logging.INFO
)

# Message templates
ERROR_MISSING_LICENSE_KEY = "Missing license key"
SUCCESS_RECONCILIATION = "Resource reconciliation completed successfully"
SUCCESS_DELETION = "Resource deletion completed successfully"
SUCCESS_UPDATE = "Resource update applied successfully"
