# %%
"""Manual grouping of squares into cells, with undo."""

from .records import Square


class CellAssignmentManager:
    """Assigns reviewer-chosen cell ids to squares.

    Only ``Square.cell_id`` is ever changed; statistics are left alone.
    A cell id of 0 means the square belongs to no cell.
    """

    def __init__(self, squares: list[Square]):
        self.squares = squares
        self._assignments: dict[int, int] = {
            sq.square_number: sq.cell_id for sq in squares if sq.cell_id != 0
        }
        self._undo_stack: list[dict[int, int]] = []

    @property
    def assignments(self) -> dict[int, int]:
        return dict(self._assignments)

    def assign(self, square_numbers, cell_id: int) -> int:
        """Put the given squares into cell ``cell_id``; returns how many changed."""
        square_numbers = set(square_numbers)
        if not square_numbers:
            return 0

        self._undo_stack.append(dict(self._assignments))
        n_assigned = 0
        for square in self.squares:
            if square.square_number in square_numbers:
                square.cell_id = cell_id
                if cell_id == 0:
                    self._assignments.pop(square.square_number, None)
                else:
                    self._assignments[square.square_number] = cell_id
                n_assigned += 1
        return n_assigned

    def undo(self) -> bool:
        """Restore the assignments from before the last assign; False if nothing to undo."""
        if not self._undo_stack:
            return False

        self._assignments = self._undo_stack.pop()
        for square in self.squares:
            square.cell_id = self._assignments.get(square.square_number, 0)
        return True
