"""Tests for parley/catalog.py."""

import pytest

from parley.catalog import ModelCatalog
from parley.errors import InvalidModelError
from parley.models import ModelDescriptor


def test_get_known_model(catalog):
    assert catalog.get("gpt-4").provider_id == "openai"


def test_get_unknown_model_raises(catalog):
    with pytest.raises(InvalidModelError, match="no-such"):
        catalog.get("no-such")


def test_contains_and_len(catalog):
    assert "m1" in catalog
    assert "m9" not in catalog
    assert len(catalog) == 4


def test_display_name_falls_back_to_id(catalog):
    assert catalog.display_name("m1") == "Model One"
    assert catalog.display_name("unknown-model") == "unknown-model"


def test_by_provider_and_providers(catalog):
    assert [m.id for m in catalog.by_provider("p2")] == ["m2"]
    assert catalog.providers() == ["anthropic", "openai", "p1", "p2"]


def test_duplicate_ids_rejected():
    model = ModelDescriptor(id="x", display_name="X", provider_id="p")
    with pytest.raises(ValueError, match="Duplicate"):
        ModelCatalog([model, model])


def test_catalog_is_read_only(catalog):
    with pytest.raises(TypeError):
        catalog._models["new"] = ModelDescriptor(id="new", display_name="New", provider_id="p")
