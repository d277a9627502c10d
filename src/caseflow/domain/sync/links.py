"""Sync links between canonical and derived fields, and their value transforms."""

from __future__ import annotations

import logging
import tomllib
import unicodedata
from dataclasses import dataclass
from importlib import resources
from typing import TYPE_CHECKING, Any

from caseflow.domain.errors import InvalidRegistryError, SyncLinkMissingError
from caseflow.domain.model import FieldRef, SyncLink

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping
    from pathlib import Path

    from caseflow.domain.model import FieldScalar

log = logging.getLogger(__name__)

type Transform = Callable[[FieldScalar], FieldScalar]

DEFAULT_SYNC_LINKS_RESOURCE = "sync_links.toml"

_FEMALE = ("FEMALE", "KOBIETA", "K", "F", "W", "WOMAN")
_MALE = ("MALE", "MĘŻCZYZNA", "MEZCZYZNA", "M", "MAN")


def normalize_gender(value: FieldScalar) -> FieldScalar:
    """Map the spellings seen on forms and Polish documents onto ``M``/``F``.

    Other values pass through unchanged so that a sync never erases what was entered.
    """
    if value is None or isinstance(value, bool):
        return value
    text = unicodedata.normalize("NFC", str(value)).strip().upper()
    if not text:
        return None
    # FEMALE contains MALE, so female spellings are checked first
    if text in _FEMALE or text.startswith(("FEMALE", "KOBIET")):
        return "F"
    if text in _MALE or text.startswith(("MALE", "MĘŻCZ", "MEZCZ")):
        return "M"
    return value


def _identity(value: FieldScalar) -> FieldScalar:
    return value


def _upper(value: FieldScalar) -> FieldScalar:
    return value.upper() if isinstance(value, str) else value


def _strip(value: FieldScalar) -> FieldScalar:
    return value.strip() if isinstance(value, str) else value


TRANSFORMS: Mapping[str, Transform] = {
    "identity": _identity,
    "gender": normalize_gender,
    "upper": _upper,
    "strip": _strip,
}


def get_transform(name: str) -> Transform:
    try:
        return TRANSFORMS[name]
    except KeyError:
        raise InvalidRegistryError(f"Unknown transform: {name!r}") from None


@dataclass(frozen=True, slots=True)
class Route:
    """Where a change to ``source`` must be written, and how to convert the value."""

    link: SyncLink
    source: FieldRef
    target: FieldRef
    transform: str

    def apply(self, value: FieldScalar) -> FieldScalar:
        return get_transform(self.transform)(value)


class SyncLinkRegistry:
    def __init__(self, links: Iterable[SyncLink]) -> None:
        self._links: list[SyncLink] = []
        self._routes: dict[FieldRef, list[Route]] = {}
        for link in links:
            self._add(link)

    def _add(self, link: SyncLink) -> None:
        if link.canonical == link.derived:
            raise InvalidRegistryError(f"Link {link.canonical} points at itself")
        get_transform(link.transform)
        get_transform(link.reverse_transform)
        self._links.append(link)
        self._routes.setdefault(link.canonical, []).append(
            Route(link, link.canonical, link.derived, link.transform)
        )
        self._routes.setdefault(link.derived, []).append(
            Route(link, link.derived, link.canonical, link.reverse_transform)
        )

    def routes(self, ref: FieldRef) -> tuple[Route, ...]:
        """Routes out of ``ref``; raises ``SyncLinkMissingError`` if there are none."""
        routes = self._routes.get(ref)
        if not routes:
            raise SyncLinkMissingError(ref.table, ref.field)
        return tuple(routes)

    def is_linked(self, ref: FieldRef) -> bool:
        return ref in self._routes

    def tables(self) -> set[str]:
        return {ref.table for ref in self._routes}

    def __iter__(self) -> Iterator[SyncLink]:
        return iter(self._links)

    def __len__(self) -> int:
        return len(self._links)


def parse_sync_links(document: Mapping[str, Any]) -> SyncLinkRegistry:
    tables = document.get("tables", {})
    canonical_table = str(tables.get("canonical", "master_table"))
    derived_table = str(tables.get("derived", "intake_data"))
    links: list[SyncLink] = []

    fields: Mapping[str, Any] = document.get("fields", {})
    for canonical_field, spec in fields.items():
        if isinstance(spec, str):
            spec = {"derived": spec}
        if not isinstance(spec, dict) or "derived" not in spec:
            raise InvalidRegistryError(f"Link for {canonical_field!r} names no derived field")
        links.append(
            SyncLink(
                canonical=FieldRef(canonical_table, canonical_field),
                derived=FieldRef(derived_table, str(spec["derived"])),  # pyright: ignore[reportUnknownArgumentType]
                transform=str(spec.get("transform", "identity")),  # pyright: ignore[reportUnknownArgumentType]
                reverse_transform=str(spec.get("reverse_transform", "identity")),  # pyright: ignore[reportUnknownArgumentType]
            )
        )

    common: list[Any] = document.get("common", {}).get("fields", [])
    links.extend(
        SyncLink(
            canonical=FieldRef(canonical_table, str(name)),
            derived=FieldRef(derived_table, str(name)),
        )
        for name in common
    )
    return SyncLinkRegistry(links)


def load_sync_links(path: Path | None = None) -> SyncLinkRegistry:
    """Load ``path``, or the links shipped with the package."""
    if path is None:
        text = (
            resources.files("caseflow.data").joinpath(DEFAULT_SYNC_LINKS_RESOURCE).read_text("utf-8")
        )
        source = f"caseflow.data/{DEFAULT_SYNC_LINKS_RESOURCE}"
    else:
        text = path.read_text("utf-8")
        source = str(path)
    try:
        document = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise InvalidRegistryError(f"Cannot parse {source}: {exc}") from exc
    registry = parse_sync_links(document)
    log.debug("Loaded %d sync links from %s", len(registry), source)
    return registry
