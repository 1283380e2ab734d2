from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ANCHORS: list[dict[str, str]] = [
    # 15 minutes
    {"address": "3727 Forest Highland Circle, Chattanooga, TN 37415", "driveTime": "15 minutes"},
    {"address": "Society of Work - Northshore, 110 Somerville Avenue, Chattanooga, TN 37405", "driveTime": "15 minutes"},
    # 20 minutes
    {"address": "Greenway Farms Dog Park, Walker Cemetery, Chattanooga, TN 37344", "driveTime": "20 minutes"},
    {"address": "McKamey Animal Center, 4500 N Access Rd, Chattanooga, TN 37415", "driveTime": "20 minutes"},
    {"address": "Miller's Ale House, 2119 Gunbarrel Road, Chattanooga, TN 37421", "driveTime": "20 minutes"},
    {"address": "Liberty Tower, 605 Chestnut Street, Chattanooga, TN 37450", "driveTime": "20 minutes"},
    # 25 minutes
    {"address": "Brainerd Baptist School, 4107 Mayfair Ave, Chattanooga, TN 37411", "driveTime": "25 minutes"},
    {"address": "Chattanooga Christian School, 3354 Charger Drive, Chattanooga, TN 37409", "driveTime": "25 minutes"},
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod

    # --- Minimal auth for the HTTP layer ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Listings provider (RapidAPI realtor search) ---
    RAPIDAPI_KEY: str | None = None
    RAPIDAPI_HOST: str | None = "realtor16.p.rapidapi.com"
    LISTINGS_SEARCH_URL: str = "https://realtor16.p.rapidapi.com/search/forsale"

    # Fixed upstream filter; every page request uses the same query
    LISTINGS_LOCATION: str = "hamilton county, tn"
    LISTINGS_PROPERTY_TYPES: str = "single_family,duplex_triplex,multi_family"
    LISTINGS_SEARCH_RADIUS: int = 25
    LISTINGS_MAX_LIST_PRICE: int = 500_000
    LISTINGS_PAGE_SIZE: int = 200

    LISTING_DETAIL_BASE_URL: str = "https://www.realtor.com/realestateandhomes-detail/"
    PLACEHOLDER_IMAGE_URL: str = "https://via.placeholder.com/300x200"

    # --- Geocoding / isochrone provider ---
    GEOAPIFY_API_KEY: str | None = None
    GEOAPIFY_BASE_URL: str = "https://api.geoapify.com/v1"

    DRIVE_TIME_ANCHORS: list[dict[str, str]] = DEFAULT_ANCHORS

    # --- Outbound pacing (listings provider only) ---
    RATE_LIMIT_RPS: float = 1.0
    RATE_LIMIT_MAX_RETRIES: int = 3
    RATE_LIMIT_RETRY_DELAY_S: float = 5.0
    RATE_LIMIT_MAX_JITTER_S: float = 1.0

    HTTP_TIMEOUT_S: float = 30.0

    # --- Cache ---
    CACHE_BACKEND: str = "file"  # file|sqlite|memory
    CACHE_DIR: str = ".cache"
    HOMEFINDER_DB_URL: str = "sqlite+aiosqlite:///./homefinder.db"
    LISTINGS_CACHE_TTL_HOURS: float = 12
    ISOCHRONE_CACHE_TTL_DAYS: float = 7

    # --- Affordability defaults ---
    MORTGAGE_INTEREST_RATE: float = 0.065
    MORTGAGE_TERM_YEARS: int = 30

    # --- Scheduler tuning ---
    SCHED_PREFETCH_INTERVAL_MINUTES: int = 720


settings = Settings()
