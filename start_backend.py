#!/usr/bin/env python3
"""
Run the Campus Poll API with uvicorn after reporting which integrations are configured.

    python start_backend.py [--reload]
"""
import sys
import uvicorn
from campuspoll.core.config import Settings


def report_settings(settings: Settings) -> bool:
    """Print the effective configuration; False when the server cannot do its job"""
    print(f"MongoDB:     {settings.mongodb_uri} (db {settings.db_name})")
    print(f"Auth header: {settings.auth_user_header}")

    if settings.gcp_key_b64:
        print(f"Moderation:  threshold {settings.moderation_threshold}, timeout {settings.moderation_timeout}s")
    else:
        # the gate fails closed, so every new prompt would be held for review
        print("✗ GCP_KEY_B64 is not set: every new prompt will be flagged")

    if not settings.signing_secret:
        print("✗ SIGNING_SECRET is not set: /api/webhooks will answer 500")

    if settings.bootstrap_moderators:
        print(f"Moderators:  {', '.join(settings.bootstrap_moderators)}")
    return bool(settings.mongodb_uri)


def main():
    settings = Settings()
    print("🔧 Campus Poll API")
    print("=" * 40)
    if not report_settings(settings):
        sys.exit(1)

    print(f"\n🚀 Listening on http://localhost:{settings.port} (docs at /docs)\n")
    uvicorn.run(
        "campuspoll.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload="--reload" in sys.argv,
    )


if __name__ == "__main__":
    main()
