"""Kuhn poker with a configurable deck size and antes.

Two players ante, each is dealt one card from a deck of ``deck_size``
distinct cards, and a single betting round follows with bet size 1:

- Player 0 passes or bets.
- After a bet the responder bets (calls) for a showdown or passes (folds).
- After a pass the responder passes for a showdown or bets, after which
  player 0 calls or folds.

At a showdown the higher card wins the pot.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from rebel.errors import InvalidAction
from rebel.game.base import Game

PASS = 0
BET = 1
INITIAL_ACTION = -1

_SHOWDOWN_HISTORIES = {(PASS, PASS), (BET, BET), (PASS, BET, BET)}
_FOLD_HISTORIES = {(BET, PASS), (PASS, BET, PASS)}


@dataclass(frozen=True)
class PublicState:
    """Public information: betting history, acting player, pot contributions."""
    history: Tuple[int, ...] = ()
    player_id: int = 0
    last_action: int = INITIAL_ACTION
    pot: Tuple[int, int] = (1, 1)


class KuhnPoker(Game):
    """Parameterized Kuhn poker."""
    
    def __init__(self, deck_size: int = 3, antes: Tuple[int, int] = (1, 1), bet_size: int = 1):
        if deck_size < 2:
            raise ValueError(f"deck_size must be at least 2, got {deck_size}")
        self.deck_size = deck_size
        self.antes = tuple(antes)
        self.bet_size = bet_size
    
    def __repr__(self) -> str:
        return f"KuhnPoker(deck_size={self.deck_size}, antes={self.antes})"
    
    @property
    def num_actions(self) -> int:
        return 2
    
    @property
    def num_hands(self) -> int:
        return self.deck_size
    
    def initial_state(self) -> PublicState:
        return PublicState(history=(), player_id=0, last_action=INITIAL_ACTION, pot=self.antes)
    
    def legal_actions(self, state: PublicState) -> List[int]:
        if state.history in _SHOWDOWN_HISTORIES or state.history in _FOLD_HISTORIES:
            return []
        return [PASS, BET]
    
    def acting_player(self, state: PublicState) -> int:
        return state.player_id
    
    def transition(self, state: PublicState, action: int) -> PublicState:
        if action not in self.legal_actions(state):
            raise InvalidAction(action, self.state_to_string(state))
        pot = list(state.pot)
        if action == BET:
            pot[state.player_id] += self.bet_size
        return PublicState(
            history=state.history + (action,),
            player_id=1 - state.player_id,
            last_action=action,
            pot=tuple(pot),
        )
    
    def terminal_values(
        self, state: PublicState, traverser: int, opponent_reach: np.ndarray
    ) -> np.ndarray:
        opponent = 1 - traverser
        win = float(state.pot[opponent])
        lose = float(state.pot[traverser])
        total = opponent_reach.sum()
        
        if state.history in _FOLD_HISTORIES:
            # The player who just passed folded; the player to act collects.
            if state.player_id == traverser:
                payoff = win
            else:
                payoff = -lose
            # Cards are dealt without replacement: the opponent cannot hold our card.
            return payoff * (total - opponent_reach)
        
        if state.history in _SHOWDOWN_HISTORIES:
            cumulative = np.cumsum(opponent_reach)
            below = cumulative - opponent_reach
            above = total - cumulative
            return win * below - lose * above
        
        raise ValueError(f"State {self.state_to_string(state)} is not terminal")
    
    def encode_state(self, state: PublicState) -> np.ndarray:
        """Features: acting player (2), last action (3), history length, pot (2)."""
        features = np.zeros(8, dtype=np.float32)
        features[state.player_id] = 1.0
        features[2 + state.last_action + 1] = 1.0
        features[5] = len(state.history) / 3.0
        scale = float(max(self.antes) + self.bet_size)
        features[6] = state.pot[0] / scale
        features[7] = state.pot[1] / scale
        return features
    
    def action_to_string(self, action: int) -> str:
        return "Pass" if action == PASS else "Bet"
    
    def action_to_string_short(self, action: int) -> str:
        return "P" if action == PASS else "B"
    
    def state_to_string(self, state: PublicState) -> str:
        last = "start" if state.last_action == INITIAL_ACTION else self.action_to_string(state.last_action)
        return f"(pid={state.player_id},last={last})"
    
    def state_to_string_short(self, state: PublicState) -> str:
        last = "beg" if state.last_action == INITIAL_ACTION else self.action_to_string_short(state.last_action)
        return f"p{state.player_id},{last}"
