import os
from typing import Optional


class Settings:
    # Upstream menu manifest endpoint
    MENU_API_BASE_URL: str = os.getenv("MENU_API_BASE_URL", "https://apis.one.rgvp.in")
    MENU_API_PATH: str = os.getenv("MENU_API_PATH", "/web_menu")
    MENU_API_TIMEOUT: float = float(os.getenv("MENU_API_TIMEOUT", "30"))
    # Fallback upstream cookie ("session=abc123") for callers without a session cookie
    MENU_API_COOKIE: Optional[str] = os.getenv("MENU_API_COOKIE")
    # Name of the viewer's session cookie forwarded upstream
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "session")

    # Manifest cache
    MENU_CACHE_KEY: str = os.getenv("MENU_CACHE_KEY", "app_menu_cache")
    MENU_CACHE_TTL_SECONDS: int = int(os.getenv("MENU_CACHE_TTL_SECONDS", "300"))
    MENU_CACHE_BACKEND: str = os.getenv("MENU_CACHE_BACKEND", "memory")  # memory or redis
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Navigation tree
    MENU_MAX_DEPTH: int = int(os.getenv("MENU_MAX_DEPTH", "32"))

    # JWT Configuration
    JWT_SECRET_KEY: str = os.getenv(
        "JWT_SECRET_KEY", "your-super-secret-jwt-key-change-this-in-production"
    )
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "240")
    )

    # Application Configuration
    DEBUG: bool = os.getenv("DEBUG", "True").lower() == "true"
    CORS_ORIGINS: list = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @property
    def menu_api_cookies(self) -> dict:
        """Parse MENU_API_COOKIE ("a=1; b=2") into a cookie mapping."""
        cookies = {}
        if not self.MENU_API_COOKIE:
            return cookies
        for part in self.MENU_API_COOKIE.split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                cookies[name] = value
        return cookies


settings = Settings()
