"""Achievement catalog tests: aliases, metric resolution, validation, file override."""

from __future__ import annotations

import json

import pytest

from snipstream.achievements.catalog import (
    DEFAULT_ACHIEVEMENTS,
    AchievementCatalog,
    AchievementDefinition,
    Metric,
    canonical_metric,
    get_catalog,
    legacy_alias,
    load_definitions_file,
)
from snipstream.config import get_settings
from snipstream.exceptions import CatalogError, UnknownMetricError


@pytest.fixture
def catalog() -> AchievementCatalog:
    return AchievementCatalog(list(DEFAULT_ACHIEVEMENTS))


class TestDefaultCatalog:
    def test_ids_are_unique(self):
        ids = [d.id for d in DEFAULT_ACHIEVEMENTS]
        assert len(ids) == len(set(ids))

    def test_every_metric_has_an_achievement(self, catalog):
        for metric in Metric:
            assert catalog.for_metric(metric), metric

    def test_snippet_achievements_in_catalog_order(self, catalog):
        ids = [d.id for d in catalog.for_metric(Metric.SNIPPETS_CREATED)]
        assert ids == ["snippet-creator", "snippet-collector", "code-master"]

    def test_display_metadata(self, catalog):
        display = catalog.get("code-master").display()
        assert display["title"] == "Code Master"
        assert display["threshold"] == 20
        assert display["criteriaType"] == "count"
        assert display["metric"] == "snippetsCreated"


class TestIdAliases:
    def test_legacy_alias(self):
        assert legacy_alias("code-master") == "CODE_MASTER"
        assert legacy_alias("early-adopter") == "EARLY_ADOPTER"

    def test_lookup_by_either_spelling(self, catalog):
        assert catalog.get("code-master") is catalog.get("CODE_MASTER")
        assert catalog.canonical_achievement_id("CODE_MASTER") == "code-master"

    def test_unknown_id(self, catalog):
        assert catalog.get("no-such-thing") is None
        assert catalog.canonical_achievement_id("NO_SUCH_THING") is None


class TestMetricResolution:
    @pytest.mark.parametrize("name", ["snippetsCreated", "SNIPPETSCREATED", "snippets_created", " SnippetsCreated "])
    def test_aliases_resolve(self, name):
        assert canonical_metric(name) is Metric.SNIPPETS_CREATED

    def test_unknown_metric_raises(self):
        with pytest.raises(UnknownMetricError) as exc:
            canonical_metric("karma")
        assert exc.value.metric == "karma"


class TestValidation:
    def _defn(self, **overrides) -> AchievementDefinition:
        fields = {
            "id": "a",
            "title": "A",
            "description": "",
            "metric": Metric.LIKES_RECEIVED,
            "threshold": 1,
        }
        fields.update(overrides)
        return AchievementDefinition(**fields)

    def test_duplicate_id_rejected(self):
        with pytest.raises(CatalogError, match="Duplicate"):
            AchievementCatalog([self._defn(), self._defn()])

    def test_non_positive_threshold_rejected(self):
        with pytest.raises(CatalogError, match="Threshold"):
            AchievementCatalog([self._defn(threshold=0)])

    def test_unknown_criteria_type_rejected(self):
        with pytest.raises(CatalogError, match="criteria"):
            AchievementCatalog([self._defn(criteria_type="ratio")])


class TestDefinitionsFile:
    def test_loads_entries_with_defaults(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps([
            {"id": "first-like", "title": "First Like", "description": "d", "metric": "likes_received", "threshold": 1},
        ]))
        (definition,) = load_definitions_file(path)
        assert definition.metric is Metric.LIKES_RECEIVED
        assert definition.threshold == 1.0
        assert definition.rarity == "Common"

    def test_missing_field_rejected(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps([{"id": "x", "title": "X"}]))
        with pytest.raises(CatalogError):
            load_definitions_file(path)

    def test_not_a_list_rejected(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps({"id": "x"}))
        with pytest.raises(CatalogError):
            load_definitions_file(path)

    def test_camel_case_criteria_type(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps([
            {"id": "any-like", "title": "Any Like", "description": "d", "metric": "likesReceived",
             "threshold": 1, "criteriaType": "boolean"},
        ]))
        (definition,) = load_definitions_file(path)
        assert definition.criteria_type == "boolean"

    def test_unknown_metric_rejected(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps([
            {"id": "x", "title": "X", "description": "d", "metric": "karma", "threshold": 1},
        ]))
        with pytest.raises(CatalogError, match="karma"):
            load_definitions_file(path)

    def test_non_positive_threshold_rejected(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps([
            {"id": "x", "title": "X", "description": "d", "metric": "likesReceived", "threshold": 0},
        ]))
        with pytest.raises(CatalogError):
            load_definitions_file(path)

    def test_malformed_json_rejected(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text("[{not json")
        with pytest.raises(CatalogError):
            load_definitions_file(path)

    def test_get_catalog_uses_configured_file(self, tmp_path, monkeypatch):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps([
            {"id": "one-view", "title": "One View", "description": "d", "metric": "viewsReceived", "threshold": 1},
        ]))
        monkeypatch.setenv("SNIP_ACHIEVEMENTS_FILE", str(path))
        get_settings.cache_clear()
        get_catalog.cache_clear()
        try:
            catalog = get_catalog()
            assert [d.id for d in catalog] == ["one-view"]
        finally:
            monkeypatch.delenv("SNIP_ACHIEVEMENTS_FILE")
            get_settings.cache_clear()
            get_catalog.cache_clear()
        assert len(get_catalog()) == len(DEFAULT_ACHIEVEMENTS)
