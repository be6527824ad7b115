# Default configuration, overridden by the instance config.py and FLASK_* environment variables.
# See example.config.py for a deployment template.

SECRET_KEY = "change me"
SESSION_PROTECTION = "strong"

# MongoDB
MONGO_URI = "mongodb://localhost:27017/personnel"

# Sentry
SENTRY_INGEST = ""
SENTRY_ENV = "production"
SENTRY_ERROR_SAMPLE_RATE = 1.0
SENTRY_TRACES_SAMPLE_RATE = 0.1

# Collection holding the personnel records that filters run against.
PERSONNEL_COLLECTION = "personnel"

# Upper bound on the size of a serialized filter tree accepted over HTTP (in bytes).
MAX_FILTER_TREE_SIZE = 64 * 1024

# Deepest nesting of groups accepted in a filter tree, the root group being level 1.
MAX_FILTER_TREE_DEPTH = 32
