"""File-backed media asset store for the gacha prize kiosk."""

__version__ = "0.1.0"
