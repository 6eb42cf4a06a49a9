"""Box tree data model.

A box is either a text box (a leaf holding one line of text) or a
container box that stacks its children vertically or horizontally. Boxes
are created through a BoxArena, which hands out a stable integer id per
node; layout results are keyed by that id, never by box value, since two
boxes with identical text can sit at different positions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from ..errors import UnsupportedBoxError


class CoordinateSpace(Enum):
    """Which coordinate system a bounding box is expressed in."""
    WORLD = "world"    # stable, pan/zoom independent
    SCREEN = "screen"  # world transformed by the current viewport


class Direction(Enum):
    """Stacking direction of a container box."""
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


@dataclass(frozen=True)
class Point:
    """A coordinate on the 2D plane."""
    x: float
    y: float


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in world or screen coordinates."""
    x: float
    y: float
    width: float
    height: float
    space: CoordinateSpace

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        """Get center point of the rectangle."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def size(self) -> Tuple[float, float]:
        return (self.width, self.height)

    def translated(self, dx: float, dy: float) -> "BoundingBox":
        """Return a copy moved by (dx, dy)."""
        return BoundingBox(self.x + dx, self.y + dy, self.width, self.height, self.space)

    def contains(self, other: "BoundingBox") -> bool:
        """Check if this rectangle entirely contains another."""
        self._check_space(other)
        return (self.x <= other.x and self.y <= other.y and
                self.right >= other.right and self.bottom >= other.bottom)

    def intersects(self, other: "BoundingBox") -> bool:
        """Check if this rectangle overlaps another (touching edges do not count)."""
        self._check_space(other)
        return not (self.right <= other.x or other.right <= self.x or
                    self.bottom <= other.y or other.bottom <= self.y)

    def _check_space(self, other: "BoundingBox"):
        if self.space is not other.space:
            raise ValueError(
                f"Cannot compare {self.space.value} box with {other.space.value} box"
            )


@dataclass(eq=False)
class TextBox:
    """A leaf box holding a single line of text."""
    box_id: int
    text: str
    color: Optional[str] = None


@dataclass(eq=False)
class ContainerBox:
    """A box stacking its children along one axis."""
    box_id: int
    direction: Direction
    children: List["Box"] = field(default_factory=list)


Box = Union[TextBox, ContainerBox]

# Layout results: box id -> bounding box
LayoutMap = Dict[int, BoundingBox]


class BoxArena:
    """Owns every box of one tree and assigns their ids.

    Ids are dense and increase in construction order, so they stay stable
    for the lifetime of the arena and can key layout maps.
    """

    def __init__(self):
        self._nodes: List[Box] = []
        self._parent: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Box]:
        return iter(self._nodes)

    def get(self, box_id: int) -> Box:
        """Look up a box by id."""
        return self._nodes[box_id]

    def text(self, text: str, color: Optional[str] = None) -> TextBox:
        """Create a text box."""
        box = TextBox(box_id=len(self._nodes), text=text, color=color)
        self._nodes.append(box)
        return box

    def container(self, direction: Direction,
                  children: Optional[List[Box]] = None) -> ContainerBox:
        """Create a container box, adopting the given children."""
        if not isinstance(direction, Direction):
            raise UnsupportedBoxError(f"Unknown container direction: {direction!r}")
        box = ContainerBox(box_id=len(self._nodes), direction=direction)
        self._nodes.append(box)
        for child in children or []:
            self.append(box, child)
        return box

    def vertical(self, children: Optional[List[Box]] = None) -> ContainerBox:
        return self.container(Direction.VERTICAL, children)

    def horizontal(self, children: Optional[List[Box]] = None) -> ContainerBox:
        return self.container(Direction.HORIZONTAL, children)

    def append(self, parent: ContainerBox, child: Box):
        """Attach a child to a container.

        A box belongs to exactly one container; re-attaching an owned box
        or attaching a box from another arena would break the tree.
        """
        if not isinstance(parent, ContainerBox):
            raise UnsupportedBoxError(f"Cannot add children to {type(parent).__name__}")
        if not self._owns(child) or not self._owns(parent):
            raise UnsupportedBoxError("Box belongs to a different arena")
        if child.box_id in self._parent:
            raise UnsupportedBoxError(
                f"Box {child.box_id} already belongs to container {self._parent[child.box_id]}"
            )
        ancestor: Optional[int] = parent.box_id
        while ancestor is not None:
            if ancestor == child.box_id:
                raise UnsupportedBoxError(
                    f"Adding box {child.box_id} to container {parent.box_id} would create a cycle"
                )
            ancestor = self._parent.get(ancestor)
        self._parent[child.box_id] = parent.box_id
        parent.children.append(child)

    def text_boxes(self, root: Box) -> Iterator[TextBox]:
        """Yield the text boxes under root in paint order."""
        if isinstance(root, TextBox):
            yield root
        elif isinstance(root, ContainerBox):
            for child in root.children:
                yield from self.text_boxes(child)
        else:
            raise UnsupportedBoxError(f"Unknown box variant: {type(root).__name__}")

    def _owns(self, box: Box) -> bool:
        return 0 <= box.box_id < len(self._nodes) and self._nodes[box.box_id] is box
