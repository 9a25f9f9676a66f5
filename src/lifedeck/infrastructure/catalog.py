"""YAML-backed card catalog."""

import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from lifedeck.domain.models import (
    CardDuration,
    CardPriority,
    CardTemplate,
    LifeDomain,
    ScoreBand,
)
from lifedeck.domain.ports import CardCatalog

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when a template document is malformed."""


def packaged_templates_text() -> str:
    return resources.files("lifedeck").joinpath("data/templates.yaml").read_text(encoding="utf-8")


def parse_templates(text: str, source: str = "<string>") -> list[CardTemplate]:
    """
    Parse a template document of the form ``domain -> band -> [template, ...]``.

    Raises:
        CatalogError: On invalid YAML, unknown domains/bands or missing fields.
    """
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CatalogError(f"{source}: invalid YAML: {e}") from e

    if not isinstance(doc, dict):
        raise CatalogError(f"{source}: expected a mapping of domains")

    templates: list[CardTemplate] = []
    for domain_key, bands in doc.items():
        try:
            domain = LifeDomain(str(domain_key).lower())
        except ValueError:
            raise CatalogError(f"{source}: unknown domain '{domain_key}'") from None
        if not isinstance(bands, dict):
            raise CatalogError(f"{source}: '{domain_key}' must map bands to lists")

        for band_key, items in bands.items():
            try:
                band = ScoreBand(str(band_key).lower())
            except ValueError:
                raise CatalogError(f"{source}: unknown band '{band_key}' in {domain_key}") from None
            for i, item in enumerate(items or []):
                where = f"{source}:{domain_key}.{band_key}[{i}]"
                templates.append(_parse_item(item, domain, band, where))

    return templates


def _parse_item(item: Any, domain: LifeDomain, band: ScoreBand, where: str) -> CardTemplate:
    if not isinstance(item, dict):
        raise CatalogError(f"{where}: template must be a mapping")
    missing = [k for k in ("title", "action") if not item.get(k)]
    if missing:
        raise CatalogError(f"{where}: missing {', '.join(missing)}")

    try:
        priority = CardPriority(item.get("priority", "medium"))
        duration = CardDuration(item.get("duration", "standard"))
    except ValueError as e:
        raise CatalogError(f"{where}: {e}") from e

    return CardTemplate(
        title=str(item["title"]),
        action_text=str(item["action"]),
        domain=domain,
        band=band,
        description=str(item.get("description", "")),
        is_premium=bool(item.get("premium", False)),
        tags=tuple(str(t) for t in item.get("tags", []) or []),
        priority=priority,
        duration=duration,
    )


class YamlCardCatalog(CardCatalog):
    """Read-only catalog loaded once from YAML (packaged templates by default)."""

    def __init__(self, templates: list[CardTemplate]):
        grouped: dict[tuple[LifeDomain, ScoreBand], list[CardTemplate]] = {}
        for t in templates:
            grouped.setdefault((t.domain, t.band), []).append(t)
        self._index: dict[tuple[LifeDomain, ScoreBand], tuple[CardTemplate, ...]] = {
            key: tuple(items) for key, items in grouped.items()
        }

    @classmethod
    def from_path(cls, path: Path) -> "YamlCardCatalog":
        text = path.read_text(encoding="utf-8")
        catalog = cls(parse_templates(text, source=str(path)))
        logger.debug(f"Loaded {len(catalog)} templates from {path}")
        return catalog

    @classmethod
    def packaged(cls) -> "YamlCardCatalog":
        return cls(parse_templates(packaged_templates_text(), source="templates.yaml"))

    def get_templates(self, domain: LifeDomain, band: ScoreBand) -> list[CardTemplate]:
        return list(self._index.get((domain, band), ()))

    def __len__(self) -> int:
        return sum(len(v) for v in self._index.values())
