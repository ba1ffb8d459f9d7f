"""
Iteration budget for repair requests.

Larger sources get more repair attempts, capped so a single request
cannot ask the service for unbounded work.
"""

MIN_ITERATIONS = 5
MAX_ITERATIONS = 30

# (max lines inclusive, budget)
_STEPS = (
    (10, 5),
    (30, 9),
    (50, 15),
)
_LINES_PER_EXTRA_ITERATION = 25


def line_count(code: str) -> int:
    """Count lines the way the editor does: split on newline, trailing line included."""
    return len(code.split("\n"))


def budget_for_lines(lines: int) -> int:
    """Map a line count to a repair iteration budget in [5, 30]."""
    for limit, budget in _STEPS:
        if lines <= limit:
            return budget
    extra = (lines - _STEPS[-1][0]) // _LINES_PER_EXTRA_ITERATION
    return min(_STEPS[-1][1] + extra, MAX_ITERATIONS)


def iteration_budget(code: str) -> int:
    """Get the repair iteration budget for a piece of source code."""
    return budget_for_lines(line_count(code))
