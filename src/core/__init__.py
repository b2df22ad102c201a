"""Core domain package for the dispatch engine.

Core contains command matching, callbacks, and session bridging logic without
any Telegram or storage-specific code, keeping the conversation logic portable.
"""
