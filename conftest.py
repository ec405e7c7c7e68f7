"""Project-level pytest configuration.

Settings are read once at import time, so the chat ids and token the tests
rely on are set in the environment before any vent_moderator module loads.
"""

import os

os.environ.setdefault("BOT_TOKEN", "123456:TEST-TOKEN")
os.environ.setdefault("BOT_USERNAME", "test_vent_bot")
os.environ.setdefault("ADMIN_ID", "1000")
os.environ.setdefault("CHANNEL_ID", "-1001234567890")
