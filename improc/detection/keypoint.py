"""Keypoints and binary descriptors."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from improc.exceptions import DescriptorMismatchError

DESCRIPTOR_BITS = 512
DESCRIPTOR_BYTES = DESCRIPTOR_BITS // 8


class DescriptorKind(Enum):
    BRIEF = "brief"
    ROTATED_BRIEF = "rotated_brief"


class KeyPointShape(Enum):
    """Marker drawn for a keypoint; only used for visualization."""
    DOT = "dot"
    BIG_DOT = "big_dot"
    CROSS = "cross"
    SQUARE = "square"


@dataclass(frozen=True)
class Descriptor:
    """512-bit binary descriptor stored as 64 bytes of 8 comparisons each."""

    kind: DescriptorKind
    bits: np.ndarray

    def __post_init__(self):
        bits = np.array(self.bits, dtype=np.uint8)
        if bits.shape != (DESCRIPTOR_BYTES,):
            raise ValueError(f"Descriptor needs {DESCRIPTOR_BYTES} bytes, got shape {bits.shape}")
        bits.flags.writeable = False
        object.__setattr__(self, "bits", bits)

    @classmethod
    def from_bools(cls, kind: DescriptorKind, flags: np.ndarray) -> "Descriptor":
        """Pack 512 comparison results; bit k of byte g holds comparison 8*g + k."""
        flags = np.asarray(flags, dtype=bool).reshape(DESCRIPTOR_BYTES, 8)
        return cls(kind, np.packbits(flags, axis=1, bitorder="little").ravel())

    def to_bools(self) -> np.ndarray:
        return np.unpackbits(self.bits, bitorder="little").astype(bool)

    def distance(self, other: "Descriptor") -> int:
        return hamming_distance(self, other)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Descriptor):
            return NotImplemented
        return self.kind is other.kind and np.array_equal(self.bits, other.bits)

    def __hash__(self) -> int:
        return hash((self.kind, self.bits.tobytes()))


def hamming_distance(a: Optional[Descriptor], b: Optional[Descriptor]) -> int:
    """Number of differing bits between two descriptors of the same variant."""
    if a is None or b is None:
        raise DescriptorMismatchError("Cannot compare a missing descriptor")
    if a.kind is not b.kind:
        raise DescriptorMismatchError(
            f"Cannot compare {a.kind.name} with {b.kind.name} descriptors"
        )
    return int(np.unpackbits(np.bitwise_xor(a.bits, b.bits)).sum())


@dataclass
class KeyPoint:
    """A detected image location with its score, scale, orientation and descriptor."""

    x: float
    y: float
    score: int = 0
    octave: int = 0
    angle: float = 0.0
    descriptor: Optional[Descriptor] = None
    color: Tuple[int, int, int] = (0, 255, 0)
    shape: KeyPointShape = field(default=KeyPointShape.CROSS)

    @property
    def pt(self) -> Tuple[float, float]:
        return self.x, self.y

    def manhattan_distance(self, other: "KeyPoint") -> float:
        return abs(self.x - other.x) + abs(self.y - other.y)

    def shape_points(self) -> List[Tuple[int, int]]:
        """Integer (x, y) pixels covered by the keypoint's marker."""
        xi, yi = int(self.x), int(self.y)

        if self.shape is KeyPointShape.DOT:
            offsets = [(0, 0)]
        elif self.shape is KeyPointShape.BIG_DOT:
            offsets = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1)]
        elif self.shape is KeyPointShape.CROSS:
            offsets = [(0, 0)] + [(d * sx, d * sy) for d in (1, 2)
                                  for sx, sy in ((-1, -1), (1, 1), (-1, 1), (1, -1))]
        else:
            offsets = [(dx, dy) for dx in range(-2, 3) for dy in range(-2, 3)
                       if abs(dx) == 2 or abs(dy) == 2]

        return [(xi + dx, yi + dy) for dx, dy in offsets]
