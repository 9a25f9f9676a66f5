import pytest

from lifedeck.infrastructure.catalog import CatalogError, YamlCardCatalog, parse_templates
from lifedeck.domain.models import CardDuration, CardPriority, LifeDomain, ScoreBand


def test_packaged_catalog_covers_every_domain_and_band():
    catalog = YamlCardCatalog.packaged()

    for domain in LifeDomain:
        for band in ScoreBand:
            templates = catalog.get_templates(domain, band)
            free = [t for t in templates if not t.is_premium]
            assert len(templates) >= 3, (domain, band)
            assert len(free) >= 2, (domain, band)
            assert all(t.domain is domain and t.band is band for t in templates)


def test_parse_templates_reads_fields():
    text = """
health:
  low:
    - title: Drink Water
      action: Drink a full glass of water
      description: Hydration first
      tags: [hydration, quick]
      priority: high
      duration: quick
    - title: Guided Stretch
      action: Follow a 10 minute routine
      premium: true
"""
    templates = parse_templates(text)

    assert len(templates) == 2
    water, stretch = templates
    assert water.domain is LifeDomain.HEALTH
    assert water.band is ScoreBand.LOW
    assert water.tags == ("hydration", "quick")
    assert water.priority is CardPriority.HIGH
    assert water.duration is CardDuration.QUICK
    assert water.is_premium is False
    assert stretch.is_premium is True
    assert stretch.duration is CardDuration.STANDARD


@pytest.mark.parametrize(
    "text, message",
    [
        ("health: [", "invalid YAML"),
        ("- just a list", "expected a mapping"),
        ("sleep:\n  low: []", "unknown domain"),
        ("health:\n  extreme: []", "unknown band"),
        ("health:\n  low:\n    - title: No action", "missing action"),
        ("health:\n  low:\n    - title: T\n      action: A\n      priority: urgent", "urgent"),
    ],
)
def test_parse_templates_rejects_bad_documents(text, message):
    with pytest.raises(CatalogError, match=message):
        parse_templates(text, source="custom.yaml")


def test_from_path(tmp_path):
    path = tmp_path / "templates.yaml"
    path.write_text("finance:\n  mid:\n    - title: Budget\n      action: Review the budget\n")

    catalog = YamlCardCatalog.from_path(path)

    assert len(catalog) == 1
    assert catalog.get_templates(LifeDomain.FINANCE, ScoreBand.MID)[0].title == "Budget"
    assert catalog.get_templates(LifeDomain.FINANCE, ScoreBand.LOW) == []
