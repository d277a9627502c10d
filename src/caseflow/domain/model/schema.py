"""Declared fields per entity kind.

The ``case`` kind carries the master data columns (applicant, spouse, parents and
grandparents); family members carry a generic set of person fields. ``table`` is
the name under which changes to these fields are published and synced.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from caseflow.domain.errors import UnknownFieldError
from caseflow.domain.model.enums import EntityKind, FieldKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    kind: FieldKind = FieldKind.TEXT


@dataclass(frozen=True, slots=True)
class EntitySchema:
    kind: EntityKind
    table: str
    fields: Mapping[str, FieldSpec]
    aliases: Mapping[str, str]

    def declared_name(self, name: str) -> str:
        return self.aliases.get(name, name)

    def field(self, name: str) -> FieldSpec:
        try:
            return self.fields[self.declared_name(name)]
        except KeyError:
            raise UnknownFieldError(name, entity_kind=self.kind.value) from None

    def __contains__(self, name: object) -> bool:
        return name in self.fields or name in self.aliases


def _person(prefix: str, *, maiden_name: bool = False, sex: bool = False) -> list[FieldSpec]:
    specs = [
        FieldSpec(f"{prefix}_first_name"),
        FieldSpec(f"{prefix}_last_name"),
        FieldSpec(f"{prefix}_pob"),
        FieldSpec(f"{prefix}_dob", FieldKind.DATE),
    ]
    if maiden_name:
        specs.append(FieldSpec(f"{prefix}_maiden_name"))
    if sex:
        specs.append(FieldSpec(f"{prefix}_sex"))
    return specs


def _schema(
    kind: EntityKind,
    table: str,
    specs: Iterable[FieldSpec],
    aliases: Mapping[str, str] | None = None,
) -> EntitySchema:
    return EntitySchema(
        kind=kind,
        table=table,
        fields=MappingProxyType({spec.name: spec for spec in specs}),
        aliases=MappingProxyType(dict(aliases or {})),
    )


CASE_SCHEMA = _schema(
    EntityKind.CASE,
    "master_table",
    [
        *_person("applicant", maiden_name=True, sex=True),
        FieldSpec("applicant_email"),
        FieldSpec("applicant_phone"),
        FieldSpec("applicant_address"),
        FieldSpec("applicant_current_citizenship"),
        FieldSpec("applicant_passport_number"),
        FieldSpec("applicant_passport_issuing_country"),
        FieldSpec("applicant_passport_issue_date", FieldKind.DATE),
        FieldSpec("applicant_passport_expiry_date", FieldKind.DATE),
        FieldSpec("applicant_is_married", FieldKind.BOOLEAN),
        FieldSpec("applicant_marital_status"),
        *_person("spouse", maiden_name=True, sex=True),
        FieldSpec("spouse_passport_number"),
        FieldSpec("date_of_marriage", FieldKind.DATE),
        FieldSpec("place_of_marriage"),
        FieldSpec("children_count", FieldKind.NUMBER),
        FieldSpec("minor_children_count", FieldKind.NUMBER),
        *_person("father"),
        *_person("mother", maiden_name=True),
        *_person("pgf"),
        *_person("pgm", maiden_name=True),
        *_person("mgf"),
        *_person("mgm", maiden_name=True),
        FieldSpec("ancestry_line"),
        FieldSpec("language_preference"),
    ],
    # person-level names used by documents and family member records
    aliases={"birth_place": "applicant_pob", "birth_date": "applicant_dob"},
)

FAMILY_MEMBER_SCHEMA = _schema(
    EntityKind.FAMILY_MEMBER,
    "family_members",
    [
        FieldSpec("first_name"),
        FieldSpec("last_name"),
        FieldSpec("maiden_name"),
        FieldSpec("sex"),
        FieldSpec("birth_date", FieldKind.DATE),
        FieldSpec("birth_place"),
        FieldSpec("death_date", FieldKind.DATE),
        FieldSpec("death_place"),
        FieldSpec("marriage_date", FieldKind.DATE),
        FieldSpec("marriage_place"),
        FieldSpec("citizenship"),
        FieldSpec("passport_number"),
        FieldSpec("birth_certificate_number"),
        FieldSpec("marriage_certificate_number"),
        FieldSpec("naturalization_date", FieldKind.DATE),
    ],
)

DEFAULT_SCHEMAS: Mapping[EntityKind, EntitySchema] = MappingProxyType(
    {CASE_SCHEMA.kind: CASE_SCHEMA, FAMILY_MEMBER_SCHEMA.kind: FAMILY_MEMBER_SCHEMA}
)


def schema_for(kind: EntityKind, schemas: Mapping[EntityKind, EntitySchema] = DEFAULT_SCHEMAS) -> EntitySchema:
    return schemas[kind]
