"""Generate trip soundtracks and cover art with retrying, debounced async pipelines."""

__all__ = [
    "backoff",
    "config",
    "cover",
    "errors",
    "lookup",
    "models",
    "playlist",
    "session",
    "state",
    "suggestions",
]
