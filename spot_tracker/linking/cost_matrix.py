"""Sparse cost matrices for the linear assignment problem. Only the pairs of spots that are physically plausible (close
enough to each other) are stored, all other pairs are implicitly impossible. Next to the costs, every row and every
column has an "alternative cost": the cost of leaving that row or column unmatched.

The matrix is stored in the compressed sparse row (CSR) format: the entries of row i are found at positions
indptr[i] to indptr[i + 1] of the indices (column numbers) and costs arrays. We don't use scipy.sparse for this,
because that library treats costs of exactly zero as absent entries, while for us a cost of zero is a perfect match.
"""
import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy

from spot_tracker.core import concurrent
from spot_tracker.core.spot import Spot
from spot_tracker.core.typing import CostEntry
from spot_tracker.linking.cost_functions import CostFunction
from spot_tracker.linking.nearby_spot_finder import find_candidate_pairs

logger = logging.getLogger(__name__)


class SparseCostMatrix:
    """A rectangular sparse cost matrix, with an alternative cost for every row and every column."""

    _row_count: int
    _column_count: int
    _indptr: numpy.ndarray
    _indices: numpy.ndarray
    _costs: numpy.ndarray
    _row_alternative_costs: numpy.ndarray
    _column_alternative_costs: numpy.ndarray

    def __init__(self, row_count: int, column_count: int, indptr: numpy.ndarray, indices: numpy.ndarray,
                 costs: numpy.ndarray, row_alternative_costs: numpy.ndarray, column_alternative_costs: numpy.ndarray):
        if len(indptr) != row_count + 1:
            raise ValueError(f"indptr must have length {row_count + 1}, got {len(indptr)}")
        if len(indices) != len(costs):
            raise ValueError(f"Got {len(indices)} column indices, but {len(costs)} costs")
        if len(row_alternative_costs) != row_count or len(column_alternative_costs) != column_count:
            raise ValueError("Need exactly one alternative cost for every row and for every column")
        self._row_count = row_count
        self._column_count = column_count
        self._indptr = numpy.asarray(indptr, dtype=numpy.intp)
        self._indices = numpy.asarray(indices, dtype=numpy.intp)
        self._costs = numpy.asarray(costs, dtype=numpy.float64)
        self._row_alternative_costs = numpy.asarray(row_alternative_costs, dtype=numpy.float64)
        self._column_alternative_costs = numpy.asarray(column_alternative_costs, dtype=numpy.float64)

    @staticmethod
    def empty(row_count: int = 0, column_count: int = 0) -> "SparseCostMatrix":
        """A matrix without any entries. All rows and columns can only go to their alternative, at zero cost."""
        return SparseCostMatrix(row_count, column_count, numpy.zeros(row_count + 1, dtype=numpy.intp),
                                numpy.zeros(0, dtype=numpy.intp), numpy.zeros(0, dtype=numpy.float64),
                                numpy.zeros(row_count, dtype=numpy.float64),
                                numpy.zeros(column_count, dtype=numpy.float64))

    @property
    def row_count(self) -> int:
        return self._row_count

    @property
    def column_count(self) -> int:
        return self._column_count

    @property
    def indptr(self) -> numpy.ndarray:
        return self._indptr

    @property
    def indices(self) -> numpy.ndarray:
        return self._indices

    @property
    def costs(self) -> numpy.ndarray:
        return self._costs

    @property
    def row_alternative_costs(self) -> numpy.ndarray:
        return self._row_alternative_costs

    @property
    def column_alternative_costs(self) -> numpy.ndarray:
        return self._column_alternative_costs

    def entry_count(self) -> int:
        """Gets the number of stored (finite) entries."""
        return len(self._costs)

    def is_empty(self) -> bool:
        """Returns True if there are no entries at all, so no pair can be matched."""
        return len(self._costs) == 0

    def row_entries(self, row: int) -> Iterable[Tuple[int, float]]:
        """Gets all (column, cost) entries of the given row, ordered by column."""
        start, end = self._indptr[row], self._indptr[row + 1]
        return zip(self._indices[start:end].tolist(), self._costs[start:end].tolist())

    def get(self, row: int, column: int) -> Optional[float]:
        """Gets the cost of the given entry, or None if the entry is absent (so the pair is impossible)."""
        start, end = self._indptr[row], self._indptr[row + 1]
        position = start + numpy.searchsorted(self._indices[start:end], column)
        if position < end and self._indices[position] == column:
            return float(self._costs[position])
        return None

    def entries(self) -> Iterable[CostEntry]:
        """Iterates over all (row, column, cost) entries."""
        for row in range(self._row_count):
            for column, cost in self.row_entries(row):
                yield row, column, cost

    def to_dense(self, absent_value: float = numpy.inf) -> numpy.ndarray:
        """Gets the costs as a dense array. Absent entries get the given value. Only useful for small matrices."""
        dense = numpy.full((self._row_count, self._column_count), absent_value, dtype=numpy.float64)
        rows = numpy.repeat(numpy.arange(self._row_count), numpy.diff(self._indptr))
        dense[rows, self._indices] = self._costs
        return dense

    def __repr__(self) -> str:
        return f"<SparseCostMatrix {self._row_count}x{self._column_count}, {self.entry_count()} entries>"


class AlternativeCostPolicy:
    """Calculates the cost of leaving a row or column unmatched. The alternative cost is factor * the given percentile
    of all costs in the matrix. With the default percentile of 100 (the maximum) and a factor above 1, leaving a row
    unmatched is always more expensive than any single allowed match."""

    factor: float
    percentile: float

    def __init__(self, factor: float = 1.05, percentile: float = 100):
        self.factor = factor
        self.percentile = percentile

    def calculate(self, costs: numpy.ndarray) -> float:
        """Gets the alternative cost for the given costs. Returns 0 if there are no costs."""
        if len(costs) == 0:
            return 0.0
        if self.percentile >= 100:
            base = float(numpy.max(costs))
        else:
            base = float(numpy.percentile(costs, self.percentile))
        alternative_cost = self.factor * base
        if alternative_cost <= 0:
            # All costs are zero; then any positive number works
            alternative_cost = 1.0
        return alternative_cost

    def __repr__(self) -> str:
        return f"AlternativeCostPolicy(factor={self.factor}, percentile={self.percentile})"


def build_cost_matrix_from_entries(row_count: int, column_count: int, entries: Iterable[CostEntry], *,
                                   policy: AlternativeCostPolicy) -> SparseCostMatrix:
    """Builds a cost matrix from the given (row, column, cost) entries. Raises ValueError for duplicate entries,
    indices out of range or invalid costs. All rows and columns get the same alternative cost, calculated by the
    policy."""
    entries = list(entries)
    rows = numpy.array([entry[0] for entry in entries], dtype=numpy.intp)
    columns = numpy.array([entry[1] for entry in entries], dtype=numpy.intp)
    costs = numpy.array([entry[2] for entry in entries], dtype=numpy.float64)

    if len(entries) > 0:
        if rows.min() < 0 or rows.max() >= row_count or columns.min() < 0 or columns.max() >= column_count:
            raise ValueError(f"Entry outside the {row_count}x{column_count} matrix")
        if not numpy.all(numpy.isfinite(costs)) or costs.min() < 0:
            raise ValueError("Costs must be finite and non-negative")

    # Sort on row, then column
    order = numpy.lexsort((columns, rows))
    rows, columns, costs = rows[order], columns[order], costs[order]
    if len(entries) > 1:
        duplicates = (rows[1:] == rows[:-1]) & (columns[1:] == columns[:-1])
        if numpy.any(duplicates):
            raise ValueError("Found the same entry twice")

    indptr = numpy.zeros(row_count + 1, dtype=numpy.intp)
    numpy.cumsum(numpy.bincount(rows, minlength=row_count), out=indptr[1:])

    alternative_cost = policy.calculate(costs)
    return SparseCostMatrix(row_count, column_count, indptr, columns, costs,
                            numpy.full(row_count, alternative_cost), numpy.full(column_count, alternative_cost))


def _evaluate_rows(rows: range, sources: Sequence[Spot], targets: Sequence[Spot], source_indices: numpy.ndarray,
                   target_indices: numpy.ndarray, row_starts: numpy.ndarray, cost_function: CostFunction,
                   extra_filter: Optional[Callable[[Spot, Spot], bool]]) -> List[CostEntry]:
    """Calculates the costs of all candidate pairs of the given rows."""
    result = []
    for row in rows:
        source = sources[row]
        for i in range(row_starts[row], row_starts[row + 1]):
            target = targets[target_indices[i]]
            if extra_filter is not None and not extra_filter(source, target):
                continue
            result.append((row, int(target_indices[i]), float(cost_function(source, target))))
    return result


def build_cost_matrix(sources: Sequence[Spot], targets: Sequence[Spot], *, max_distance: float,
                      cost_function: CostFunction, policy: Optional[AlternativeCostPolicy] = None,
                      extra_filter: Optional[Callable[[Spot, Spot], bool]] = None,
                      max_workers: Optional[int] = 1) -> SparseCostMatrix:
    """Builds a cost matrix with the sources as rows and the targets as columns. Only pairs that are at most
    max_distance apart (and that pass the extra filter, if given) get an entry. If there are no sources or no targets,
    an empty matrix is returned.

    The costs are calculated on max_workers threads, with every thread handling a block of rows.
    """
    if len(sources) == 0 or len(targets) == 0:
        return SparseCostMatrix.empty(len(sources), len(targets))
    if policy is None:
        policy = AlternativeCostPolicy()

    source_indices, target_indices, _ = find_candidate_pairs(sources, targets, max_distance)
    row_starts = numpy.zeros(len(sources) + 1, dtype=numpy.intp)
    numpy.cumsum(numpy.bincount(source_indices, minlength=len(sources)), out=row_starts[1:])

    chunks = concurrent.split_in_chunks(len(sources), concurrent.get_worker_count(max_workers) * 4)
    entry_lists = concurrent.map_in_parallel(
        lambda rows: _evaluate_rows(rows, sources, targets, source_indices, target_indices, row_starts,
                                    cost_function, extra_filter), chunks, max_workers=max_workers)
    entries = [entry for entry_list in entry_lists for entry in entry_list]

    matrix = build_cost_matrix_from_entries(len(sources), len(targets), entries, policy=policy)
    logger.debug(f"Built cost matrix of {len(sources)}x{len(targets)} with {matrix.entry_count()} entries")
    return matrix
