"""Statically declared content-type registry.

Every type's tenant relation is the ``tenant`` column on ``documents``; no
storage layout is discovered at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass

from tenantgate.exceptions import UnknownContentTypeError
from tenantgate.types import FieldType

TENANT_FIELD = "tenant"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    type: FieldType = FieldType.STRING
    target: str | None = None  # content-type uid for relations
    required: bool = False


@dataclass(frozen=True, slots=True)
class ContentTypeSpec:
    uid: str
    singular_name: str
    plural_name: str
    display_name: str
    fields: tuple[FieldSpec, ...]
    main_field: str = "title"
    tenant_scoped: bool = True
    draft_and_publish: bool = True
    default_sort: tuple[str, str] | None = None  # (field, ASC|DESC)

    def get_field(self, name: str) -> FieldSpec | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def relation_target(self, name: str) -> str | None:
        """Target uid of relation field ``name``, if it is one."""
        spec = self.get_field(name)
        if spec is None or spec.type is not FieldType.RELATION:
            return None
        return spec.target


def api_uid(name: str) -> str:
    return f"api::{name}.{name}"


S = FieldType.STRING
_PERSON_FIELDS = (
    FieldSpec("name", S, required=True),
    FieldSpec("slug"),
    FieldSpec("title"),
    FieldSpec("biography", FieldType.RICHTEXT),
    FieldSpec("photo", FieldType.MEDIA),
    FieldSpec("order", FieldType.INTEGER),
)
_PLACE_FIELDS = (
    FieldSpec("name", S, required=True),
    FieldSpec("slug"),
    FieldSpec("address", FieldType.TEXT),
    FieldSpec("phone"),
    FieldSpec("email"),
    FieldSpec("website"),
    FieldSpec("description", FieldType.RICHTEXT),
    FieldSpec("image", FieldType.MEDIA),
)


def _directory_type(
    name: str, plural: str, display: str, fields: tuple[FieldSpec, ...]
) -> ContentTypeSpec:
    return ContentTypeSpec(
        uid=api_uid(name),
        singular_name=name,
        plural_name=plural,
        display_name=display,
        fields=fields,
        main_field="name",
    )


CONTENT_TYPES: tuple[ContentTypeSpec, ...] = (
    ContentTypeSpec(
        uid=api_uid("article"),
        singular_name="article",
        plural_name="articles",
        display_name="Article",
        fields=(
            FieldSpec("title", S, required=True),
            FieldSpec("slug"),
            FieldSpec("description", FieldType.TEXT),
            FieldSpec("body", FieldType.RICHTEXT),
            FieldSpec("cover", FieldType.MEDIA),
            FieldSpec("author"),
            FieldSpec("category", FieldType.RELATION, target=api_uid("category")),
            FieldSpec("related", FieldType.RELATION, target=api_uid("article")),
            FieldSpec("views", FieldType.INTEGER),
            FieldSpec("isFeatured", FieldType.BOOLEAN),
        ),
        default_sort=("publishedAt", "DESC"),
    ),
    ContentTypeSpec(
        uid=api_uid("category"),
        singular_name="category",
        plural_name="categories",
        display_name="Category",
        fields=(FieldSpec("name", S, required=True), FieldSpec("slug"), FieldSpec("description")),
        main_field="name",
        tenant_scoped=False,
        draft_and_publish=False,
    ),
    ContentTypeSpec(
        uid=api_uid("advertisement-slot"),
        singular_name="advertisement-slot",
        plural_name="advertisement-slots",
        display_name="Advertisement Slot",
        fields=(
            FieldSpec("title", S, required=True),
            FieldSpec("placement"),
            FieldSpec("image", FieldType.MEDIA),
            FieldSpec("link"),
            FieldSpec("startsAt", FieldType.DATETIME),
            FieldSpec("endsAt", FieldType.DATETIME),
            FieldSpec("views", FieldType.INTEGER),
        ),
    ),
    ContentTypeSpec(
        uid=api_uid("flash-news-item"),
        singular_name="flash-news-item",
        plural_name="flash-news-items",
        display_name="Flash News Item",
        fields=(
            FieldSpec("link"),
            FieldSpec("priority", FieldType.INTEGER),
            FieldSpec("title", S, required=True),
            FieldSpec("isFeatured", FieldType.BOOLEAN),
            FieldSpec("expiresAt", FieldType.DATETIME),
        ),
    ),
    ContentTypeSpec(
        uid=api_uid("directory-home"),
        singular_name="directory-home",
        plural_name="directory-homes",
        display_name="Directory Home",
        fields=(
            FieldSpec("title", S, required=True),
            FieldSpec("intro", FieldType.RICHTEXT),
            FieldSpec("banner", FieldType.MEDIA),
        ),
    ),
    _directory_type("bishop", "bishops", "Directory - Bishops", _PERSON_FIELDS),
    _directory_type("catholicos", "catholicoi", "Directory - Catholicos", _PERSON_FIELDS),
    _directory_type(
        "diocesan-bishop",
        "diocesan-bishops",
        "Directory - Diocesan Bishops",
        (*_PERSON_FIELDS, FieldSpec("diocese", FieldType.RELATION, target=api_uid("diocese"))),
    ),
    _directory_type(
        "retired-bishop", "retired-bishops", "Directory - Retired Bishops", _PERSON_FIELDS
    ),
    _directory_type(
        "diocese",
        "dioceses",
        "Directory - Dioceses",
        (*_PLACE_FIELDS, FieldSpec("bishop", FieldType.RELATION, target=api_uid("bishop"))),
    ),
    _directory_type(
        "parish",
        "parishes",
        "Directory - Parishes",
        (*_PLACE_FIELDS, FieldSpec("diocese", FieldType.RELATION, target=api_uid("diocese"))),
    ),
    _directory_type(
        "church",
        "churches",
        "Directory - Churches",
        (
            *_PLACE_FIELDS,
            FieldSpec("diocese", FieldType.RELATION, target=api_uid("diocese")),
            FieldSpec("parish", FieldType.RELATION, target=api_uid("parish")),
        ),
    ),
    _directory_type(
        "priest",
        "priests",
        "Directory - Priests",
        (*_PERSON_FIELDS, FieldSpec("parish", FieldType.RELATION, target=api_uid("parish"))),
    ),
    _directory_type(
        "directory-entry",
        "directory-entries",
        "Directory - Entries",
        (
            FieldSpec("name", S, required=True),
            FieldSpec("category"),
            FieldSpec("details", FieldType.RICHTEXT),
            FieldSpec("diocese", FieldType.RELATION, target=api_uid("diocese")),
        ),
    ),
    _directory_type("institution", "institutions", "Directory - Institutions", _PLACE_FIELDS),
    _directory_type(
        "church-dignitary", "church-dignitaries", "Directory - Church Dignitaries", _PERSON_FIELDS
    ),
    _directory_type(
        "working-committee",
        "working-committees",
        "Directory - Working Committee",
        _PERSON_FIELDS,
    ),
    _directory_type(
        "managing-committee",
        "managing-committees",
        "Directory - Managing Committee",
        _PERSON_FIELDS,
    ),
    _directory_type(
        "spiritual-organisation",
        "spiritual-organisations",
        "Directory - Spiritual Organisations",
        _PLACE_FIELDS,
    ),
    _directory_type(
        "pilgrim-centre", "pilgrim-centres", "Directory - Pilgrim Centres", _PLACE_FIELDS
    ),
    _directory_type("seminary", "seminaries", "Directory - Seminaries", _PLACE_FIELDS),
    ContentTypeSpec(
        uid=api_uid("liturgy-day"),
        singular_name="liturgy-day",
        plural_name="liturgy-days",
        display_name="Liturgy Day",
        fields=(
            FieldSpec("date", FieldType.DATE, required=True),
            FieldSpec("title"),
            FieldSpec("season"),
            FieldSpec("readings", FieldType.RICHTEXT),
        ),
        main_field="title",
        tenant_scoped=False,
        default_sort=("date", "ASC"),
    ),
)

_BY_UID = {ct.uid: ct for ct in CONTENT_TYPES}
_BY_PLURAL = {ct.plural_name: ct for ct in CONTENT_TYPES}

TENANT_SCOPED_UIDS: frozenset[str] = frozenset(ct.uid for ct in CONTENT_TYPES if ct.tenant_scoped)

# Types whose admin configuration hides internal fields from editors
SCRUBBED_CONFIGURATION_UIDS: frozenset[str] = frozenset(
    api_uid(name)
    for name in (
        "article",
        "advertisement-slot",
        "flash-news-item",
        "directory-home",
        "bishop",
        "diocese",
        "parish",
        "church",
        "priest",
        "directory-entry",
    )
)


def get_content_type(uid: str) -> ContentTypeSpec:
    """Return the registered spec for ``uid``."""
    spec = _BY_UID.get(uid)
    if spec is None:
        raise UnknownContentTypeError(f"Unknown content type: {uid}")
    return spec


def by_plural_name(plural_name: str) -> ContentTypeSpec:
    """Return the spec exposed under ``/api/{plural_name}``."""
    spec = _BY_PLURAL.get(plural_name)
    if spec is None:
        raise UnknownContentTypeError(f"Unknown content type: {plural_name}")
    return spec


def is_tenant_scoped(uid: str) -> bool:
    return uid in TENANT_SCOPED_UIDS
