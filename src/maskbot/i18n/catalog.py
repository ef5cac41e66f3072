"""
Message catalog - YAML string tables per language.

Loads ``locales/<lang>.yaml`` files shipped with the package. Lookups fall
back from ``pt-BR`` to ``pt`` and then to the default language; a message
id missing everywhere renders as the id itself.

Directory structure:
    i18n/
    └── locales/
        ├── en.yaml
        └── ru.yaml
"""

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class Catalog:
    """All loaded languages, keyed by lowercase language tag."""

    def __init__(self, locales_dir: str | Path | None = None, default_language: str = "en"):
        self.locales_dir = (
            Path(locales_dir) if locales_dir else Path(__file__).parent / "locales"
        )
        self.default_language = default_language.lower()
        self._messages: dict[str, dict[str, str]] = {}
        self._load_all()

    def _load_all(self):
        for yaml_file in sorted(self.locales_dir.glob("*.yaml")):
            language = yaml_file.stem.lower()
            try:
                with open(yaml_file, "r", encoding="utf-8") as f:
                    messages = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.error("Failed to load %s: %s", yaml_file, e)
                continue
            self._messages[language] = {str(k): str(v) for k, v in messages.items()}

        if self.default_language not in self._messages:
            logger.warning("Default language %r has no catalog", self.default_language)
        logger.info("Loaded message catalogs: %s", ", ".join(self.languages) or "none")

    @property
    def languages(self) -> list[str]:
        return list(self._messages)

    def match(self, language_code: str | None) -> str:
        """Best available language for a Telegram language code."""
        if language_code:
            tag = language_code.lower().replace("_", "-")
            if tag in self._messages:
                return tag
            base = tag.split("-", 1)[0]
            if base in self._messages:
                return base
        return self.default_language

    def lookup(self, language: str, message_id: str) -> str | None:
        template = self._messages.get(language, {}).get(message_id)
        if template is None and language != self.default_language:
            template = self._messages.get(self.default_language, {}).get(message_id)
        return template

    def localizer(self, language_code: str | None) -> "Localizer":
        return Localizer(self, self.match(language_code))


class Localizer:
    """Catalog bound to one language, created per incoming event."""

    def __init__(self, catalog: Catalog, language: str):
        self.catalog = catalog
        self.language = language

    def localize(self, message_id: str, **data: Any) -> str:
        """Render a message, substituting ``{name}`` placeholders from data."""
        template = self.catalog.lookup(self.language, message_id)
        if template is None:
            logger.warning("Missing message %r for %r", message_id, self.language)
            return message_id
        if not data:
            return template
        try:
            return template.format(**data)
        except (KeyError, IndexError, ValueError) as e:
            logger.error("Failed to render %r for %r: %s", message_id, self.language, e)
            return template
