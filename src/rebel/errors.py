"""Exception hierarchy for the solver and the data pipeline."""


class RebelError(Exception):
    """Base class for all errors raised by this package."""


class InvalidAction(RebelError):
    """An action outside ``legal_actions(state)`` was applied to a state."""
    
    def __init__(self, action: int, state=None):
        self.action = action
        self.state = state
        super().__init__(f"Action {action} is not legal in state {state}")


class DivergedNumerically(RebelError):
    """Accumulated regrets or values became NaN or infinite."""
    
    def __init__(self, iteration: int, what: str = "regrets"):
        self.iteration = iteration
        self.what = what
        super().__init__(f"Non-finite {what} detected at CFR iteration {iteration}")


class EvaluationError(RebelError):
    """The value estimator failed; the current trajectory must be discarded."""


class EmptyBuffer(RebelError):
    """The replay buffer holds fewer entries than were requested."""
    
    def __init__(self, size: int, requested: int):
        self.size = size
        self.requested = requested
        super().__init__(f"Replay buffer has {size} entries, {requested} requested")


class CapacityError(RebelError):
    """No slot could be freed in the replay buffer for a new entry."""
