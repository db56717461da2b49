import copy

import pytest

from tenantgate.content_types.configuration import build_configuration
from tenantgate.content_types.registry import api_uid, get_content_type
from tenantgate.tenancy.scope import AdminIdentity
from tenantgate.tenancy.scrubber import HIDDEN_FIELDS, scrub_configuration

EDITOR = AdminIdentity(id=2, email="e@example.com", roles=frozenset({"editor"}))
SUPER_ADMIN = AdminIdentity(id=1, email="r@example.com", roles=frozenset({"super-admin"}))
ARTICLE = api_uid("article")
FLASH = api_uid("flash-news-item")


def _config(uid: str) -> dict:
    return build_configuration(get_content_type(uid))


def _names(items) -> list:
    names = []
    for item in items:
        if isinstance(item, list):
            names.extend(_names(item))
        elif isinstance(item, dict):
            names.append(item.get("name", item.get("field")))
        else:
            names.append(item)
    return names


@pytest.mark.unit
class TestScrubConfiguration:
    def test_editor_loses_hidden_fields_in_layouts(self) -> None:
        scrubbed = scrub_configuration(_config(ARTICLE), ARTICLE, EDITOR)
        layouts = scrubbed["data"]["contentType"]["layouts"]
        assert not HIDDEN_FIELDS & set(_names(layouts["list"]))
        assert not HIDDEN_FIELDS & set(_names(layouts["edit"]))
        assert "title" in _names(layouts["edit"])

    def test_metadatas_are_kept(self) -> None:
        scrubbed = scrub_configuration(_config(ARTICLE), ARTICLE, EDITOR)
        metadatas = scrubbed["data"]["contentType"]["metadatas"]
        assert {"tenant", "views", "isFeatured"} <= set(metadatas)

    def test_input_is_not_mutated(self) -> None:
        config = _config(ARTICLE)
        original = copy.deepcopy(config)
        scrub_configuration(config, ARTICLE, EDITOR)
        assert config == original

    def test_other_callers_and_types_are_untouched(self) -> None:
        config = _config(ARTICLE)
        assert scrub_configuration(config, ARTICLE, SUPER_ADMIN) is config
        assert scrub_configuration(config, ARTICLE, None) is config
        seminary = _config(api_uid("seminary"))
        assert scrub_configuration(seminary, api_uid("seminary"), EDITOR) is seminary

    def test_strips_every_array_shape(self) -> None:
        config = {
            "layouts": {"list": ["id", "title", "tenant"], "edit": [[{"name": "views", "size": 6}]]},
            "extra": [{"field": "isFeatured"}, {"field": "slug"}, "tenant"],
            "metadatas": {"tenant": {"edit": {}}},
        }
        scrubbed = scrub_configuration(config, ARTICLE, EDITOR)
        assert scrubbed["layouts"]["list"] == ["id", "title"]
        assert scrubbed["layouts"]["edit"] == [[]]
        assert scrubbed["extra"] == [{"field": "slug"}]
        assert scrubbed["metadatas"] == {"tenant": {"edit": {}}}

    def test_flash_news_title_comes_first(self) -> None:
        scrubbed = scrub_configuration(_config(FLASH), FLASH, EDITOR)
        edit = scrubbed["data"]["contentType"]["layouts"]["edit"]
        assert edit[0][0]["name"] == "title"
        assert _names(edit).count("title") == 1
        assert "isFeatured" not in _names(edit)

    def test_title_first_only_for_flash_news(self) -> None:
        scrubbed = scrub_configuration(_config(ARTICLE), ARTICLE, EDITOR)
        edit = scrubbed["data"]["contentType"]["layouts"]["edit"]
        assert edit[0][0]["name"] == "title"
        config = {"layouts": {"edit": [[{"name": "link"}], [{"name": "title"}]]}}
        assert scrub_configuration(config, ARTICLE, EDITOR)["layouts"]["edit"] == [
            [{"name": "link"}],
            [{"name": "title"}],
        ]
        moved = scrub_configuration(config, FLASH, EDITOR)["layouts"]["edit"]
        assert moved == [[{"name": "title"}, {"name": "link"}]]
