"""Global constants for the matchboard application."""

# Key-value storage keys (Local-Only backend)
SESSIONS_KEY = "match_results_app_data"
SETTINGS_KEY = "match_results_app_settings"
SYNC_CODE_KEY = "match_results_sync_id"

# Firestore collections
SESSIONS_COLLECTION = "sessions"
SETTINGS_COLLECTION = "settings"
SETTINGS_DOCUMENT = "access"

# Login gate defaults, used when the settings record does not exist yet
DEFAULT_ADMIN_PASSWORD = "admin"  # nosec B105
DEFAULT_REFEREE_PASSWORD = "referee"  # nosec B105

# Synchronizer
SYNC_INTERVAL_SECONDS = 3.0
SYNC_CODE_PARAM = "sid"
SHARED_BIN_URL = "https://jsonblob.com/api/jsonBlob"

# submittedBy stamps for corrections made from the results board
ADMIN_EDIT_LABEL = "後台修改"
REFEREE_EDIT_LABEL = "裁判修改"

# Spreadsheet columns; the first alias of each is used on export
TABLE_NUMBER_HEADERS = ("桌號", "抬號", "Table")
P1_ID_HEADERS = ("先手ID", "先手編號", "P1 ID")
P1_NAME_HEADERS = ("先手姓名", "P1 Name")
P2_ID_HEADERS = ("後手ID", "後手編號", "P2 ID")
P2_NAME_HEADERS = ("後手姓名", "P2 Name")
RESULT_HEADER = "結果"
SUBMITTED_BY_HEADER = "回報者"
UPDATED_AT_HEADER = "更新時間"

STANDINGS_HEADERS = ("選手ID", "姓名", "總積分", "勝", "負", "和", "完賽場數")

IMPORT_EXTENSIONS = ("xlsx", "xlsm", "csv")
