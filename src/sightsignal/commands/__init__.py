"""
SightSignal CLI command modules.

Each module exposes ``register_parsers(subparsers)`` and handlers that
return JSON-serializable dicts.
"""
