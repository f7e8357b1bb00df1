"""friend_plates package."""

__all__ = [
    "cache",
    "config",
    "display",
    "engine",
    "host",
    "manual",
    "models",
    "name_utils",
    "protocol",
    "resolver",
    "seeding",
    "server",
    "session",
    "state",
    "tables",
]
