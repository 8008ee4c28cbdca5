import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "mirror-edge")

OWN_DOMAIN = os.environ.get("OWN_DOMAIN", "b.com")
PROCESSABLE_CONTENT_TYPES = [
    t.strip()
    for t in os.environ.get(
        "PROCESSABLE_CONTENT_TYPES",
        "text/html,text/css,application/javascript,application/x-javascript,"
        "text/javascript,application/json",
    ).split(",")
    if t.strip()
]
PROXY_TIMEOUT_MS = int(os.environ.get("PROXY_TIMEOUT_MS", "10000"))
# Empty list disables the country gate
ALLOWED_COUNTRIES = [
    c.strip().upper()
    for c in os.environ.get("ALLOWED_COUNTRIES", "").split(",")
    if c.strip()
]
COUNTRY_HEADER = os.environ.get("COUNTRY_HEADER", "cf-ipcountry")
FORCED_USER_AGENT = os.environ.get("FORCED_USER_AGENT", "")
SUBSTITUTION_MODE = os.environ.get("SUBSTITUTION_MODE", "global").lower()
MAX_REWRITE_BODY_BYTES = int(
    os.environ.get("MAX_REWRITE_BODY_BYTES", str(10 * 1024 * 1024))
)

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
