import pytest

from tenantgate.content_types.configuration import build_configuration
from tenantgate.content_types.registry import (
    CONTENT_TYPES,
    SCRUBBED_CONFIGURATION_UIDS,
    TENANT_SCOPED_UIDS,
    api_uid,
    by_plural_name,
    get_content_type,
    is_tenant_scoped,
)
from tenantgate.exceptions import NotFoundError, UnknownContentTypeError


@pytest.mark.unit
class TestRegistry:
    def test_lookup(self) -> None:
        assert get_content_type("api::article.article").plural_name == "articles"
        assert by_plural_name("parishes").uid == api_uid("parish")

    def test_unknown_type_is_not_found(self) -> None:
        with pytest.raises(UnknownContentTypeError):
            get_content_type("api::nope.nope")
        with pytest.raises(NotFoundError):
            by_plural_name("nopes")

    def test_scoping(self) -> None:
        assert is_tenant_scoped(api_uid("article"))
        assert is_tenant_scoped(api_uid("seminary"))
        assert not is_tenant_scoped(api_uid("category"))
        assert not is_tenant_scoped(api_uid("liturgy-day"))
        assert SCRUBBED_CONFIGURATION_UIDS <= TENANT_SCOPED_UIDS

    def test_names_are_unique(self) -> None:
        assert len({ct.uid for ct in CONTENT_TYPES}) == len(CONTENT_TYPES)
        assert len({ct.plural_name for ct in CONTENT_TYPES}) == len(CONTENT_TYPES)

    def test_relation_targets_are_registered(self) -> None:
        for ct in CONTENT_TYPES:
            for field in ct.fields:
                target = ct.relation_target(field.name)
                if target is not None:
                    get_content_type(target)
        assert get_content_type(api_uid("article")).relation_target("title") is None


@pytest.mark.unit
class TestBuildConfiguration:
    def test_article(self) -> None:
        body = build_configuration(get_content_type(api_uid("article")), page_size=25)
        content_type = body["data"]["contentType"]
        assert content_type["uid"] == api_uid("article")
        assert content_type["settings"]["pageSize"] == 25
        assert content_type["settings"]["defaultSortBy"] == "publishedAt"
        assert content_type["settings"]["defaultSortOrder"] == "DESC"
        assert content_type["layouts"]["list"][:2] == ["id", "title"]
        assert "publishedAt" in content_type["layouts"]["list"]
        assert content_type["layouts"]["list"][-1] == "tenant"
        assert "tenant" in content_type["metadatas"]

    def test_edit_rows_fit_the_grid(self) -> None:
        body = build_configuration(get_content_type(api_uid("church")))
        rows = body["data"]["contentType"]["layouts"]["edit"]
        assert all(sum(cell["size"] for cell in row) <= 12 for row in rows)
        assert rows[-1][-1]["name"] == "tenant"

    def test_unscoped_type_has_no_tenant(self) -> None:
        body = build_configuration(get_content_type(api_uid("category")))
        content_type = body["data"]["contentType"]
        assert "tenant" not in content_type["metadatas"]
        assert "tenant" not in content_type["layouts"]["list"]
        assert content_type["settings"]["mainField"] == "name"
