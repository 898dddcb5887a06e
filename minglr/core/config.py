from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Supabase
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_service_key: Optional[str] = None

    # JWT issued by Supabase auth
    supabase_jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # "supabase" or "memory"
    store_backend: str = "supabase"
    seed_activities: bool = True

    # Storage
    upload_max_bytes: int = 5 * 1024 * 1024
    avatar_bucket: str = "profile-pictures"
    post_image_bucket: str = "post-images"

    # Text generation
    openai_api_key: Optional[str] = None
    ranking_model: str = "gpt-4o-mini"
    ranking_size: int = 4
    ranking_cache_size: int = 256

    # App
    app_name: str = "Minglr API"
    debug: bool = True
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
