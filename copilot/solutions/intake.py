"""Slot-filling intake for a resolved solution.

The machine is implicit: a state is terminal once every ask step's guard
reports its slot as filled.
"""

from copilot.solutions.models import AnchorType, AskStep, CanonicalSolution, IntakeState


def start_intake(solution: CanonicalSolution, state: IntakeState | None = None) -> IntakeState:
    """Seed intake from a resolved solution without clobbering user answers."""
    state = state or IntakeState()
    if state.securing is None:
        state.securing = solution.securing
    if state.anchor_type is None and solution.anchor_type is not AnchorType.UNKNOWN:
        state.anchor_type = solution.anchor_type
    return state


def next_question(solution: CanonicalSolution, state: IntakeState) -> AskStep | None:
    """First ask step whose slot is still missing, or None when intake is complete."""
    for step in solution.ask_steps:
        if step.guard(state):
            return step
    return None


def is_complete(solution: CanonicalSolution, state: IntakeState) -> bool:
    return next_question(solution, state) is None
