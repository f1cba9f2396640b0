"""Orchestration layer - paper status lifecycle."""

from minjok.orchestration.state_machine import StateMachine, can_transition, valid_transitions

__all__ = [
    "StateMachine",
    "can_transition",
    "valid_transitions",
]
