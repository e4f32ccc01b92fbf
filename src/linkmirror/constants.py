# SPDX-License-Identifier: MIT
"""Constants used throughout link mirror.

This module centralizes:

- **Remote API**: endpoint base, page size cap and the credential-expired sentinel code
- **Credential lifetime**: fixed bearer token lifetime
- **Sync timing**: default interval, initial delay, retry interval and retry cap
- **Cache retention**: how long a persisted snapshot stays usable
- **Field mapping**: default remote column names and per-record fallbacks
"""

# Remote API
DEFAULT_BASE_URL: str = "https://open.feishu.cn/open-apis"
AUTH_PATH: str = "/auth/v3/tenant_access_token/internal"
RECORDS_PATH_TEMPLATE: str = "/bitable/v1/apps/{app_token}/tables/{table_id}/records"
PAGE_SIZE: int = 100
DEFAULT_REQUEST_TIMEOUT: float = 30.0
SUCCESS_CODE: int = 0
TOKEN_EXPIRED_CODE: int = 99991663

# Credential lifetime (seconds)
TOKEN_LIFETIME_SECONDS: int = 2 * 60 * 60  # 2 hours

# Sync timing
DEFAULT_SYNC_INTERVAL_MINUTES: int = 30
DEFAULT_INITIAL_DELAY_SECONDS: float = 60.0
RETRY_INTERVAL_SECONDS: float = 60.0
MAX_RETRIES: int = 3

# Cache retention
SNAPSHOT_RETENTION_DAYS: int = 7

# Record defaults
DEFAULT_SORT_KEY: int = 999
DEFAULT_CATEGORY: str = "Uncategorized"
MAX_LINK_NAME_LENGTH: int = 50
FAVICON_URL_TEMPLATE: str = "https://www.google.com/s2/favicons?sz=64&domain={domain}"

# Default remote column names
DEFAULT_CATEGORY_FIELD: str = "分类"
DEFAULT_NAME_FIELD: str = "站点名称"
DEFAULT_URL_FIELD: str = "网址"
DEFAULT_SORT_FIELD: str = "排序"
DEFAULT_ICON_FIELD: str = "备用图标"
