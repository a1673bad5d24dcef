"""Core domain package for skyscope.

Core contains filter rules, subscription state, and event processing without
any websocket, HTTP, or storage-specific code, keeping the business logic
portable.
"""
