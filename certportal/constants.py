DEFAULT_ADMIN_SUFFIX = "@admin.com"

DEFAULT_CERT_PREFIX = "TEKRON"
CERT_NUMBER_RANGE = 10000

DEFAULT_AUTHORITY = "Newton School of Technology"
DEFAULT_POSITION = "1st"
DEFAULT_VENUE = "Newton School of Technology, ADYPU, Pune"
DEFAULT_CUSTOM_TEXT = (
    "We appreciate your dedication and commend your outstanding performance."
)

PARTICIPATION_CUSTOM_TEXT = (
    "has successfully completed the event and is awarded this certificate "
    "of participation."
)
PARTICIPATION_AUTHORITY = "Certificate Authority"

# Keys written into the durable session store by the session gate.
AUTH_STORAGE_KEY = "auth-storage"
BACKEND_SESSION_KEY = "backend-session"

ACCESS_DENIED_MESSAGE = (
    "Access denied. You need administrator privileges to access this area."
)
INVALID_CREDENTIALS_MESSAGE = (
    "Invalid email or password. Please check your credentials and try again."
)
RATE_LIMIT_MESSAGE = "Too many login attempts. Please try again later."
RENDER_FAILED_MESSAGE = "Failed to generate certificate. Please try again."

ROBOTS_TXT = "User-agent: *\nDisallow: /admin\n"

# roster uploads; the preview posts the same text back as a form field
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
