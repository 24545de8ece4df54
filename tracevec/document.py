"""In-memory vector document."""
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from tracevec.types import Color, CompoundPath


@dataclass
class DocumentEntry:
    """One filled compound path."""
    path: CompoundPath
    color: Color


@dataclass
class VectorDocument:
    """Sized, ordered collection of filled paths.

    Entry order is paint order: the first entry is the bottom-most.
    """
    width: int
    height: int
    path_precision: int = 2
    entries: List[DocumentEntry] = field(default_factory=list)

    def add_path(self, path: CompoundPath, color: Color) -> None:
        self.entries.append(DocumentEntry(path, tuple(int(c) for c in color)))

    def extend(self, items: List[Tuple[CompoundPath, Color]]) -> None:
        for path, color in items:
            self.add_path(path, color)

    def __iter__(self) -> Iterator[DocumentEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
