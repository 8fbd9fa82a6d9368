"""
Cross-cutting infrastructure for the ID card API.

Submodules are imported directly (``app.core.config``, ``app.core.auth``,
``app.core.storage`` ...) so that importing one piece never drags in the
database engine or the Redis client.
"""
