# A Flask SECRET_KEY used for sensitive operations (like signing session cookies),
# needs to be properly random.
# For example the output of "openssl rand -hex 32" or "python -c 'import os; print(os.urandom(16))'"
SECRET_KEY = "some proper randomness here"
SESSION_PROTECTION = "strong"
PREFERRED_URL_SCHEME = "https"
SERVER_NAME = "example.com:5000"

# Sentry
# SENTRY_INGEST is the URL of your Sentry ingest endpoint.
SENTRY_INGEST = ""
SENTRY_ENV = "production"
SENTRY_ERROR_SAMPLE_RATE = 1.0
SENTRY_TRACES_SAMPLE_RATE = 1.0

# MongoDB
MONGO_URI = "mongodb://localhost:27017/personnel"

# Collection holding the personnel records.
PERSONNEL_COLLECTION = "personnel"

# Largest serialized filter tree accepted in the filter_tree query parameter (in bytes).
MAX_FILTER_TREE_SIZE = 64 * 1024

# Deepest nesting of groups accepted in a filter tree.
MAX_FILTER_TREE_DEPTH = 32
