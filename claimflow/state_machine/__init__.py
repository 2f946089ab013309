from .machine import ClaimStateMachine, Transition

__all__ = ["ClaimStateMachine", "Transition"]
