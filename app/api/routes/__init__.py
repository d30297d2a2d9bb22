"""Route modules exposed by the API package."""

from . import ping, ratings, settings, technicians, tickets

__all__ = ["ping", "ratings", "settings", "technicians", "tickets"]
