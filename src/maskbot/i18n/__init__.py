"""Localized user-facing strings."""

from maskbot.i18n.catalog import Catalog, Localizer

__all__ = ["Catalog", "Localizer"]
