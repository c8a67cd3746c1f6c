import os

from .utils.cache import get_cache

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")

# Base URL of the GEE server; the definitions document is requested from
# <GEE_SERVER_URL>query?request=Json&var=<GEE_SERVER_DEFS_VAR>
GEE_SERVER_URL = os.getenv("GEE_SERVER_URL", "")
GEE_SERVER_DEFS_VAR = os.getenv("GEE_SERVER_DEFS_VAR", "geeServerDefs")
GEE_TIMEOUT = int(os.getenv("GEE_TIMEOUT_S", "20"))

# Origin for the static chrome icons. Empty means "origin of the page request".
GEE_STATIC_URL = os.getenv("GEE_STATIC_URL", "")

MAPS_API_URL = os.getenv("MAPS_API_URL", "https://maps.googleapis.com/maps/api/js")

CACHE_TTL = int(os.getenv("CACHE_TTL", "900"))
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "1000"))

# How long the search tabs wait before declaring a search failed.
# Overridden per page with ?search_timeout=<ms>.
SEARCH_TIMEOUT_MS = int(os.getenv("SEARCH_TIMEOUT_MS", "5000"))

# Initial view, overridden per page with ?ll=lat,lng and ?z=zoom.
INITIAL_VIEW_LAT = float(os.getenv("INITIAL_VIEW_LAT", "37.422"))
INITIAL_VIEW_LNG = float(os.getenv("INITIAL_VIEW_LNG", "-122.08"))
INITIAL_ZOOM_LEVEL = int(os.getenv("INITIAL_ZOOM_LEVEL", "6"))

DEFAULT_SINGLE_CLICK_ZOOM_LEVEL = 10  # City level
DEFAULT_DOUBLE_CLICK_ZOOM_LEVEL = 14  # Neighborhood level
DEFAULT_BALLOON_MAX_WIDTH_PIXELS = 500
MIN_ZOOM_LEVEL = 0
MAX_ZOOM_LEVEL = 32

cache = get_cache(ttl=CACHE_TTL)
