from __future__ import annotations

from statemachine import State, StateMachine


class GameSessionFSM(StateMachine):
    """Lifecycle of the single game slot.

    - idle -> running on start, running -> running on update, running -> idle on stop.
    - Only guards transitions; the session owns the game data.
    """

    idle = State("Idle", value="idle", initial=True)
    running = State("Running", value="running")

    start_game = idle.to(running)
    update_game = running.to(running)
    stop_game = running.to(idle)

    def __init__(self, *, active: bool = False):
        super().__init__(start_value="running" if active else "idle")

    @property
    def has_game(self) -> bool:
        return self.current_state == self.running
