"""
rocketcart - client-side shopping cart state

This package contains:
- cart: line items, snapshot stores, engine and session facade
- inventory: stock / catalog API client
- notifications: shopper notification sinks
- config, logging, i18n: ambient infrastructure

Note: Imports are lazy so that `rocketcart.logging` and `rocketcart.config`
can be used without pulling in the HTTP and Redis clients.
"""

__version__ = "0.1.0"

__all__ = [
    "CartSession",
    "open_session",
    "CartError",
    "CartErrorKind",
    "Product",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name in ("CartSession", "open_session"):
        from rocketcart.cart import service
        return getattr(service, name)
    elif name in ("CartError", "CartErrorKind"):
        from rocketcart import errors
        return getattr(errors, name)
    elif name == "Product":
        from rocketcart.cart.models import Product
        return Product
    raise AttributeError(f"module 'rocketcart' has no attribute '{name}'")
