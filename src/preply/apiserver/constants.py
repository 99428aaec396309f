API_PREFIX_V1 = "/v1"

# Name of the cookie carrying the session credential.
SESSION_COOKIE_NAME = "session"

# Session credentials are valid for one week from sign-in.
SESSION_TTL_SECONDS = 60 * 60 * 24 * 7

# Document store collections.
USERS_COLLECTION = "users"
INTERVIEWS_COLLECTION = "interviews"

# Number of interviews shown in the discoverable feed when the caller does not ask for a specific count.
DEFAULT_DISCOVERABLE_LIMIT = 20
