"""
PowerTools constants
"""

LOGGER_NAME = "PowerTools"

PERIODICAL_BACKEND_PERIOD = 5000  # milliseconds
AUTOMATIC_REAPPLY_WAIT = 2000  # milliseconds

BACKEND_HOST = "127.0.0.1"
BACKEND_PORT = 44443
BACKEND_CALL_PATH = "/usdpl/call"

STORE_MAIN_APP_ID = "1"
STORE_MAIN_APP_ID_DEV = "0"

# Anything the backend cannot parse as a u64 becomes u64::MAX, which makes it
# generate a fresh variant id.
NEW_VARIANT_ID = "please give me a new ID k thx bye"
# Variant id passed when an app starts; the backend picks the app's first variant.
APP_START_VARIANT_ID = "0"

# Decky events emitted towards the JavaScript shell
PROFILE_CHANGED_EVENT = "profile_changed"
RENDER_EVENT = "render"
OPEN_QUICK_ACCESS_EVENT = "open_quick_access"
