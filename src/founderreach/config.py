from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    data_dir: str = "data"
    log_level: str = "INFO"
    log_file: str = "logs/founderreach.log"

    # Contact / email discovery
    hunter_api_key: Optional[str] = None
    rocketreach_api_key: Optional[str] = None

    # Candidate discovery (web search backends)
    brave_api_key: Optional[str] = None
    tavily_api_key: Optional[str] = None
    google_cse_api_key: Optional[str] = None
    google_cse_cx: Optional[str] = None

    # Gmail transport
    gmail_credentials_path: str = "~/.founderreach/gmail_credentials.json"
    gmail_token_path: str = "~/.founderreach/gmail_token.json"
    from_email: str = ""

    # Pitch signature
    sender_name: str = ""
    sender_company: str = "FounderReach"
    sender_website: str = ""
    success_fee_percent: int = 15

    # Pipeline
    send_emails: bool = False            # False = dry-run, discovery only
    email_send_delay_seconds: float = 1.0
    cron_schedule: str = "*/30 * * * *"
    search_title: str = "Founding Engineer"
    search_location: str = "Bangalore"
    scrape_max_pages: int = 2
    curated_candidates_limit: int = 3
    min_candidate_rating: int = 4
    max_send_retries: int = 3


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
