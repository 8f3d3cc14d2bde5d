#!/usr/bin/env python3
"""
Database initialization script for Campus Poll.
Connects with the configured MONGODB_URI, creates every index the API
relies on and prints how many documents each collection holds.
"""
import asyncio
import sys
from campuspoll.core.config import Settings
from campuspoll.core.database import PROMPTS, USER_RESPONSES, USERS, Database


async def init_database():
    settings = Settings()
    database = Database(settings)

    print("🔗 Connecting to MongoDB...")
    print(f"Database: {settings.db_name}")
    await database.connect(max_retries=1)
    print("✅ Connected and indexes created")

    try:
        print("\n📊 Collections:")
        for name in (USERS, PROMPTS, USER_RESPONSES):
            count = await database.db[name].count_documents({})
            print(f"  • {name}: {count} documents")

        if settings.bootstrap_moderators:
            print("\n🛡️  Bootstrap moderators: " + ", ".join(settings.bootstrap_moderators))
        print(f"\n🎉 Database '{database.db.name}' initialized successfully!")
    finally:
        await database.disconnect()


def main():
    try:
        asyncio.run(init_database())
    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
