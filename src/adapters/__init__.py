"""Adapters that connect the dispatch core to SQLite, Snowball, and Telegram."""
