"""
Display -- the monochrome pixel grid of the CHIP-8.

The grid is stored row-major as a flat list of booleans:
``cells[y * width + x]``.  The interpreter only ever toggles or clears
cells; the host renderer reads them after any number of steps.

Standard dimensions
-------------------

=======  =====  ======  =====
Machine  width  height  cells
=======  =====  ======  =====
CHIP-8   64     32      2048
=======  =====  ======  =====
"""

from __future__ import annotations

from typing import Iterator, List


class Display:
    """Fixed-size boolean pixel grid.

    Parameters
    ----------
    width:
        Horizontal pixel count.
    height:
        Vertical pixel count.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0:
            raise ValueError(f"width must be positive, got {width}")
        if height <= 0:
            raise ValueError(f"height must be positive, got {height}")

        self.width: int = width
        self.height: int = height
        self.cells: List[bool] = [False] * (width * height)

    # ------------------------------------------------------------------
    # Pixel helpers
    # ------------------------------------------------------------------

    def get_pixel(self, x: int, y: int) -> bool:
        """Return the state of the pixel at column *x*, row *y*.

        Raises:
            IndexError: If the coordinates are outside the grid.
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"pixel ({x}, {y}) out of range [0, {self.width}) x [0, {self.height})"
            )
        return self.cells[y * self.width + x]

    def toggle_pixel(self, x: int, y: int) -> bool:
        """XOR the pixel at (*x*, *y*) with 1.

        Returns:
            ``True`` if the pixel was lit and is now off (a collision).
        """
        offset = y * self.width + x
        was_lit = self.cells[offset]
        self.cells[offset] = not was_lit
        return was_lit

    def lit_count(self) -> int:
        """Number of pixels currently on."""
        return sum(self.cells)

    def rows(self) -> Iterator[List[bool]]:
        """Yield one list of booleans per row, top to bottom."""
        w = self.width
        for y in range(self.height):
            yield self.cells[y * w:(y + 1) * w]

    # ------------------------------------------------------------------
    # Buffer management
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Turn every pixel off."""
        for i in range(len(self.cells)):
            self.cells[i] = False

    def copy_from(self, other: Display) -> None:
        """Copy the pixel contents of *other* into this grid in place."""
        if (other.width, other.height) != (self.width, self.height):
            raise ValueError(
                f"Display size mismatch: {other.width}x{other.height} "
                f"into {self.width}x{self.height}"
            )
        self.cells[:] = other.cells

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.cells)

    def __getitem__(self, index: int) -> bool:
        return self.cells[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Display):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and self.cells == other.cells
        )

    def __repr__(self) -> str:
        return (
            f"Display(width={self.width}, height={self.height}, "
            f"lit={self.lit_count()})"
        )
