"""Stockpool Admin with Unfold theme."""

__all__ = [
    "BaseModelAdmin",
    "BaseTabularInline",
]


def __getattr__(name):
    """Lazy import so the app can be listed in INSTALLED_APPS before Unfold loads."""
    if name in ("BaseModelAdmin", "BaseTabularInline"):
        from stockpool.contrib.admin_unfold import base
        return getattr(base, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
