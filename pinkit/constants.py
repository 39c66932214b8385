"""
Constants for pinkit.

These constants are used by various modules for sensible defaults.
Most of them can be overridden through the config system.
"""

# Remote service
DEFAULT_BASE_URL = "https://api.pinboard.in/v1/"
RESPONSE_FORMAT = "json"

# Endpoint paths, relative to the base URL
ENDPOINT_ALL_PINS = "posts/all"
ENDPOINT_ADD_PIN = "posts/add"
ENDPOINT_DELETE_PIN = "posts/delete"
ENDPOINT_LAST_UPDATE = "posts/update"
ENDPOINT_SUGGEST = "posts/suggest"
ENDPOINT_TAGS_GET = "tags/get"
ENDPOINT_TAGS_RENAME = "tags/rename"
ENDPOINT_TAGS_DELETE = "tags/delete"

# The literal the service uses to report a successful mutation
RESULT_DONE = "done"

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 10

# Local snapshot
DEFAULT_CACHE_DIR = "~/.cache/pinkit"
PINS_CACHE_FILE = "pins.cache"
TAGS_CACHE_FILE = "tags.cache"
CACHE_FORMAT_VERSION = 1
