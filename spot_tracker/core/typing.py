from typing import Tuple

# Row index, column index and cost of a single entry in a cost matrix.
CostEntry = Tuple[int, int, float]
