"""Links are accepted correspondences between two spots in different frames. The source spot is always the one that
is earlier in time."""
from enum import Enum
from typing import NamedTuple


class LinkType(Enum):
    """The category of a link, which tells you which step of the tracker created it."""
    FRAME_TO_FRAME = "frame-to-frame"
    GAP_CLOSING = "gap-closing"
    SPLITTING = "splitting"
    MERGING = "merging"

    def __str__(self) -> str:
        return self.value

    @staticmethod
    def from_name(name: str) -> "LinkType":
        """Parses the value of a link type, like "gap-closing". Raises ValueError for unknown names."""
        for link_type in LinkType:
            if link_type.value == name:
                return link_type
        raise ValueError(f"Unknown link type: {name}")


class Link(NamedTuple):
    """A link from a spot to a spot in a later frame."""

    source_id: int
    target_id: int
    cost: float
    link_type: LinkType

    def ids(self):
        """Gets the (source_id, target_id) tuple."""
        return self.source_id, self.target_id
