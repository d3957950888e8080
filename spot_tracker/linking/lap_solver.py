"""Solves the linear assignment problem (LAP) for a sparse cost matrix. Every row is matched to at most one column and
every column to at most one row; rows and columns that are left unmatched cost their alternative cost. The solver
returns the globally optimal solution, so it never settles for a greedy approximation.

The rectangular problem with alternatives is first rewritten as a square problem, following

K. Jaqaman, D. Loerke, M. Mettlen, H. Kuwata, S. Grinstein, S. L. Schmid, G. Danuser. Robust single-particle tracking
in live-cell time-lapse sequences. Nature Methods 5, 695-702 (2008).

For a matrix with R rows and C columns, the square matrix has R + C rows and C + R columns::

    | costs (R x C)                      | row alternatives (diagonal, R x R) |
    | column alternatives (diagonal, CxC) | transposed pattern of costs, zero  |

The square problem is then solved with the shortest augmenting path method of

R. Jonker, A. Volgenant. A shortest augmenting path algorithm for dense and sparse linear assignment problems.
Computing 38, 325-340 (1987).

Only the stored entries are ever visited, so the running time depends on the number of candidate pairs, not on R * C.
"""
import heapq
import logging
import math
from typing import List, Tuple

import numpy

from spot_tracker.linking.cost_matrix import SparseCostMatrix

logger = logging.getLogger(__name__)

_NO_MATCH = -1


class SolverError(Exception):
    """Raised when the solver cannot find a solution. This points to an invalid cost matrix, since the alternative
    costs make sure that a valid matrix always has a solution."""
    pass


class Assignment:
    """The solution of a linear assignment problem. Unmatched rows and columns are set to -1."""

    row_to_column: numpy.ndarray
    column_to_row: numpy.ndarray
    matched_cost: float  # Sum of the costs of all matched pairs
    total_cost: float  # matched_cost plus the alternative costs of all unmatched rows and columns

    def __init__(self, row_to_column: numpy.ndarray, column_to_row: numpy.ndarray, matched_cost: float,
                 total_cost: float):
        self.row_to_column = row_to_column
        self.column_to_row = column_to_row
        self.matched_cost = matched_cost
        self.total_cost = total_cost

    def pairs(self) -> List[Tuple[int, int]]:
        """Gets all matched (row, column) pairs, ordered by row."""
        return [(row, int(column)) for row, column in enumerate(self.row_to_column) if column != _NO_MATCH]

    def __len__(self) -> int:
        """Gets the number of matched pairs."""
        return int(numpy.count_nonzero(self.row_to_column != _NO_MATCH))

    def __repr__(self) -> str:
        return f"<Assignment of {len(self)} pairs, total cost {self.total_cost}>"


def _check_matrix(matrix: SparseCostMatrix):
    """Raises SolverError if the matrix cannot be solved."""
    costs = matrix.costs
    if len(costs) > 0:
        if not numpy.all(numpy.isfinite(costs)) or costs.min() < 0:
            raise SolverError("All costs must be finite and non-negative")
        if matrix.indices.min() < 0 or matrix.indices.max() >= matrix.column_count:
            raise SolverError(f"Column index outside the matrix with {matrix.column_count} columns")
    if numpy.any(numpy.diff(matrix.indptr) < 0) or matrix.indptr[0] != 0 or matrix.indptr[-1] != len(costs):
        raise SolverError("Invalid row pointers in the cost matrix")
    for alternative_costs in (matrix.row_alternative_costs, matrix.column_alternative_costs):
        if len(alternative_costs) > 0 and (not numpy.all(numpy.isfinite(alternative_costs))
                                           or alternative_costs.min() < 0):
            raise SolverError("All alternative costs must be finite and non-negative")


class _SquareProblem:
    """The square matrix described in the module docstring, restricted to the rows and columns that have at least one
    entry. Stored as adjacency lists: for every square row a list of (square column, cost)."""

    row_ids: List[int]  # Square row (< len(row_ids)) -> original row
    column_ids: List[int]  # Square column (< len(column_ids)) -> original column
    adjacency: List[List[Tuple[int, float]]]

    def __init__(self, matrix: SparseCostMatrix):
        row_counts = numpy.diff(matrix.indptr)
        self.row_ids = numpy.flatnonzero(row_counts > 0).tolist()
        self.column_ids = numpy.unique(matrix.indices).tolist()
        square_column_of = dict((column, index) for index, column in enumerate(self.column_ids))

        row_count = len(self.row_ids)
        column_count = len(self.column_ids)
        self.adjacency = [list() for _ in range(row_count + column_count)]

        for square_row, row in enumerate(self.row_ids):
            entries = self.adjacency[square_row]
            for column, cost in matrix.row_entries(row):
                square_column = square_column_of[column]
                entries.append((square_column, cost))

                # Transposed entry in the bottom-right block
                self.adjacency[row_count + square_column].append((column_count + square_row, 0.0))

            # Alternative of this row (top-right block)
            entries.append((column_count + square_row, float(matrix.row_alternative_costs[row])))

        for square_column, column in enumerate(self.column_ids):
            # Alternative of this column (bottom-left block)
            self.adjacency[row_count + square_column].append(
                (square_column, float(matrix.column_alternative_costs[column])))

    def size(self) -> int:
        return len(self.adjacency)


def _solve_square(adjacency: List[List[Tuple[int, float]]]) -> List[int]:
    """Solves the square assignment problem. Returns the column of every row."""
    size = len(adjacency)
    row_to_column = [_NO_MATCH] * size
    column_to_row = [_NO_MATCH] * size
    assigned_cost = [0.0] * size  # Cost of the entry (row, row_to_column[row])

    # Column reduction: every column gets a price equal to its cheapest entry, and that row is assigned to the column
    # if it is still free. Afterwards all reduced costs (cost - price) are non-negative.
    prices = [math.inf] * size
    cheapest_row = [_NO_MATCH] * size
    for row, entries in enumerate(adjacency):
        for column, cost in entries:
            if cost < prices[column]:
                prices[column] = cost
                cheapest_row[column] = row
    for column in reversed(range(size)):
        row = cheapest_row[column]
        if row == _NO_MATCH:
            raise SolverError(f"Column {column} has no entries, so no complete assignment exists")
        if row_to_column[row] == _NO_MATCH:
            row_to_column[row] = column
            column_to_row[column] = row
            assigned_cost[row] = prices[column]

    # Augmentation: for every free row, find the cheapest path to a free column using Dijkstra on the reduced costs
    for free_row in range(size):
        if row_to_column[free_row] != _NO_MATCH:
            continue
        _augment(free_row, adjacency, prices, row_to_column, column_to_row, assigned_cost)

    return row_to_column


def _augment(free_row: int, adjacency: List[List[Tuple[int, float]]], prices: List[float], row_to_column: List[int],
             column_to_row: List[int], assigned_cost: List[float]):
    distances = dict()
    predecessors = dict()
    heap = []
    for column, cost in adjacency[free_row]:
        distance = cost - prices[column]
        if distance < distances.get(column, math.inf):
            distances[column] = distance
            predecessors[column] = free_row
            heapq.heappush(heap, (distance, column))

    scanned = list()
    scanned_set = set()
    end_column = _NO_MATCH
    shortest = math.inf
    while len(heap) > 0:
        distance, column = heapq.heappop(heap)
        if column in scanned_set or distance > distances[column]:
            continue  # Outdated heap entry
        scanned.append(column)
        scanned_set.add(column)

        row = column_to_row[column]
        if row == _NO_MATCH:
            end_column = column
            shortest = distance
            break

        # Continue the path through the row currently assigned to this column
        row_potential = assigned_cost[row] - prices[column]
        for next_column, cost in adjacency[row]:
            if next_column in scanned_set:
                continue
            next_distance = distance + cost - prices[next_column] - row_potential
            if next_distance < distances.get(next_column, math.inf):
                distances[next_column] = next_distance
                predecessors[next_column] = row
                heapq.heappush(heap, (next_distance, next_column))

    if end_column == _NO_MATCH:
        raise SolverError(f"No augmenting path found for row {free_row}; the problem is infeasible")

    # Update the prices, so that the reduced costs stay non-negative
    for column in scanned:
        prices[column] += distances[column] - shortest

    # Flip the assignments along the path
    column = end_column
    while True:
        row = predecessors[column]
        previous_column = row_to_column[row]
        row_to_column[row] = column
        column_to_row[column] = row
        assigned_cost[row] = _find_cost(adjacency[row], column)
        if row == free_row:
            break
        column = previous_column


def _find_cost(entries: List[Tuple[int, float]], column: int) -> float:
    for entry_column, cost in entries:
        if entry_column == column:
            return cost
    raise SolverError(f"Missing entry for column {column}")


def solve(matrix: SparseCostMatrix) -> Assignment:
    """Finds the assignment with the lowest total cost. Rows and columns without any entries are left unmatched
    without bothering the solver. Raises SolverError if the matrix is invalid."""
    _check_matrix(matrix)
    row_to_column = numpy.full(matrix.row_count, _NO_MATCH, dtype=numpy.intp)
    column_to_row = numpy.full(matrix.column_count, _NO_MATCH, dtype=numpy.intp)

    matched_cost = 0.0
    if not matrix.is_empty():
        problem = _SquareProblem(matrix)
        logger.debug(f"Solving square assignment problem of size {problem.size()} for {matrix}")
        square_solution = _solve_square(problem.adjacency)

        column_count = len(problem.column_ids)
        for square_row, row in enumerate(problem.row_ids):
            square_column = square_solution[square_row]
            if square_column < column_count:
                column = problem.column_ids[square_column]
                row_to_column[row] = column
                column_to_row[column] = row
                matched_cost += matrix.get(row, column)

    unmatched_cost = float(numpy.sum(matrix.row_alternative_costs[row_to_column == _NO_MATCH])) \
        + float(numpy.sum(matrix.column_alternative_costs[column_to_row == _NO_MATCH]))
    return Assignment(row_to_column, column_to_row, matched_cost, matched_cost + unmatched_cost)
