import os
from typing import List, Optional
from dotenv import load_dotenv

# Local .env first, then whatever the process environment already carries
load_dotenv()

DEFAULT_MODERATION_URL = "https://language.googleapis.com/v2/documents:moderateText"


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Runtime configuration read from environment variables"""

    def __init__(self, **overrides):
        self.mongodb_uri = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
        self.db_name = os.getenv("DB_NAME", "campuspoll")

        self.gcp_key_b64 = os.getenv("GCP_KEY_B64")
        self.moderation_api_url = os.getenv("MODERATION_API_URL", DEFAULT_MODERATION_URL)
        self.moderation_threshold = float(os.getenv("MODERATION_THRESHOLD", "0.7"))
        self.moderation_timeout = float(os.getenv("MODERATION_TIMEOUT_SECONDS", "10"))

        self.stats_min_responses_per_answer = int(os.getenv("STATS_MIN_RESPONSES_PER_ANSWER", "2"))

        self.signing_secret = os.getenv("SIGNING_SECRET")
        self.auth_user_header = os.getenv("AUTH_USER_HEADER", "X-User-Id")
        self.bootstrap_moderators = _split_csv(os.getenv("BOOTSTRAP_MODERATORS"))

        self.cors_origins = _split_csv(os.getenv("CORS_ORIGINS", "http://localhost:3000"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.port = int(os.getenv("PORT", "8000"))

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)
