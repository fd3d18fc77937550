from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Listing service configuration
    host: str = "0.0.0.0"
    port: int = 8000

    # Durable slot storage
    database_url: str = "sqlite+aiosqlite:///./server_listing.db"

    # Live data overlay
    live_data_ttl: float = 60        # Seconds between live data fetches
    refresh_interval: int = 60       # How often the overlay is force-refreshed
    live_data_timeout: int = 10      # Request timeout for the live data URL

    # Accounts created with these names get the admin role
    admin_usernames: List[str] = ["admin", "owner", "rustaradise"]

    # Home page
    featured_count: int = 3

    # CORS
    allowed_origins: list = ["*"]  # Restrict in production

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
