"""Installer, updater and launcher for the LLC localization of Limbus Company."""

__version__ = "0.1.15"