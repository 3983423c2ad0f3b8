"""Room lifecycle: state machine, join rules and the orchestrator."""

from roomchain.rooms.orchestrator import RoomOrchestrator
from roomchain.rooms.state_machine import BetRule, RoomStateMachine

__all__ = ["BetRule", "RoomOrchestrator", "RoomStateMachine"]
