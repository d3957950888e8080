"""Analysis of the tracks created by the linking code."""
