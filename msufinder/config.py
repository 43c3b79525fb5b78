"""Pinned hosts, page paths, and HTTP settings."""

from .models import HostTarget

# Pinned (address, vhost) pairs
TECHNET = HostTarget(address="157.56.148.23", vhost="technet.microsoft.com")
MICROSOFT = HostTarget(address="104.72.230.162", vhost="www.microsoft.com")
GOOGLEAPIS = HostTarget(address="74.125.28.95", vhost="www.googleapis.com")

# Technet bulletin pages
ADVISORY_PATH = "/en-us/library/security/{bulletin}.aspx"
ADVISORY_URL = "https://technet.microsoft.com" + ADVISORY_PATH
ADVISORY_NOT_FOUND = "We are sorry. The page you requested cannot be found"
BULLETIN_SEARCH_PAGE = "/en-us/security/bulletin/dn602597.aspx"
BULLETIN_SEARCH_API = "/security/bulletin/services/GetBulletins"
BULLETINS_PER_PAGE = 9999
CATALOG_ALL_PRODUCTS = "-1"

# Microsoft download center
CONFIRMATION_MARKER = "confirmation.aspx?id="
CONFIRMATION_BASE_URL = "https://www.microsoft.com/en-us/download/"

# Google Custom Search JSON API
CUSTOM_SEARCH_PATH = "/customsearch/v1"
CUSTOM_SEARCH_PAGE_SIZE = 10  # 10 is the API maximum
# "Note: This API returns up to the first 100 results only."
CUSTOM_SEARCH_MAX_RESULTS = 100

# Environment variables for web search credentials
ENV_API_KEY = "MSUFINDER_APIKEY"
ENV_SEARCH_ENGINE_ID = "MSUFINDER_CX"

# HTTP
USER_AGENT = (
    "msufinder/0.1.0 "
    "(+https://github.com/example/msufinder; security-research)"
)
REQUEST_TIMEOUT = 30
MAX_ATTEMPTS = 3
RETRY_DELAY = 5  # seconds between attempts
