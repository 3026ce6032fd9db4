import os

API_URL = os.getenv("DOMO_API_URL", "https://api.domo.com")
TOKEN_URL = os.getenv("DOMO_TOKEN_URL", "https://api.domo.com/oauth/token")
DEFAULT_SCOPES = ("data",)
DEFAULT_BUFFER_SIZE = 5 * 1024 * 1024
DEFAULT_REQUEST_TIMEOUT = 60.0
TOKEN_EXPIRY_LEEWAY_S = 30
CONFIG_DIR_NAME = ".domostream"
