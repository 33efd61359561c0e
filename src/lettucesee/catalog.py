"""Class catalog: class index to display name and color.

The catalog is built once at startup (usually from detector.yaml) and
passed into the decoder. It is read-only, so concurrent decoders can share
one instance without locking.

Author: Matthew Hong
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from lettucesee.config import get_class_table, get_section

logger = logging.getLogger(__name__)


RGBColor = tuple[int, int, int]


@dataclass(frozen=True)
class ClassInfo:
    """Display information for one class.

    Attributes:
        name: Human-readable class name
        color: RGB display color
    """

    name: str
    color: RGBColor


UNKNOWN_CLASS = ClassInfo(name="unknown", color=(0, 255, 0))
"""Substituted for class indices missing from the catalog."""


@dataclass(frozen=True)
class ClassCatalog:
    """Immutable lookup table from class index to ClassInfo.

    Example:
        >>> catalog = ClassCatalog.from_config()
        >>> catalog.lookup(1).name
        'disease_lettuce'
        >>> catalog.lookup(7).name
        'unknown'
    """

    entries: Mapping[int, ClassInfo]
    fallback: ClassInfo = UNKNOWN_CLASS

    def __post_init__(self) -> None:
        # Freeze a private copy so later edits to the caller's dict are ignored
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    @classmethod
    def from_table(
        cls,
        table: Iterable[Mapping[str, Any]],
        fallback: ClassInfo = UNKNOWN_CLASS,
    ) -> "ClassCatalog":
        """Build a catalog from ``{"index", "name", "color"}`` rows.

        Raises:
            ValueError: If an index appears twice
        """
        entries: dict[int, ClassInfo] = {}
        for row in table:
            index = int(row["index"])
            if index in entries:
                raise ValueError(f"Duplicate class index in catalog: {index}")
            entries[index] = ClassInfo(name=str(row["name"]), color=_to_rgb(row["color"]))
        return cls(entries=entries, fallback=fallback)

    @classmethod
    def from_config(cls) -> "ClassCatalog":
        """Build the catalog from the ``classes`` and ``fallback_class`` sections."""
        fallback_cfg = get_section("fallback_class")
        fallback = ClassInfo(
            name=str(fallback_cfg["name"]),
            color=_to_rgb(fallback_cfg["color"]),
        )
        return cls.from_table(get_class_table(), fallback=fallback)

    def lookup(self, class_index: int) -> ClassInfo:
        """Return the ClassInfo for an index, or the fallback if it is unknown.

        Unknown indices are logged at WARNING level.
        """
        info = self.entries.get(class_index)
        if info is not None:
            return info

        logger.warning(
            f"Class index {class_index} not in catalog, "
            f"using fallback '{self.fallback.name}'"
        )
        return self.fallback

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, class_index: object) -> bool:
        return class_index in self.entries

    @property
    def names(self) -> list[str]:
        """Class names ordered by index."""
        return [self.entries[i].name for i in sorted(self.entries)]


def _to_rgb(value: Iterable[int]) -> RGBColor:
    r, g, b = (int(c) for c in value)
    return (r, g, b)
