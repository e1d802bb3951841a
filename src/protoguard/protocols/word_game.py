"""Guess-the-word game protocol.

The game is NOT_RUNNING or ``Running(guesses, letters)``: guesses left and
distinct letters still hidden. A correct guess uncovers a letter, a wrong
one costs a guess. The game may only be declared won once no letters are
left, and lost once no guesses are left; either way it returns to
NOT_RUNNING, the only state a session may end in.
"""

from __future__ import annotations

import string
from typing import Any

from protoguard.config import ProtoguardSettings
from protoguard.core.state import IndexedState, StateFamily
from protoguard.protocol import ResourceProtocol

GAME = "Game"
LETTERS = frozenset(string.ascii_lowercase)

NOT_RUNNING = IndexedState("NotRunning")
Running = StateFamily("Running", ("guesses", "letters"))


def can_guess(state: Any) -> bool:
    match state:
        case IndexedState("Running", (guesses, letters)):
            return guesses > 0 and letters > 0
    return False


def is_won(state: Any) -> bool:
    match state:
        case IndexedState("Running", (_, 0)):
            return True
    return False


def is_lost(state: Any) -> bool:
    match state:
        case IndexedState("Running", (0, letters)):
            return letters > 0
    return False


def build_word_game_protocol(
    max_guesses: int = 6,
    max_letters: int = len(LETTERS),
    settings: ProtoguardSettings | None = None,
) -> ResourceProtocol:
    """Declare the Game kind.

    ``new_game`` reports how many distinct letters the chosen word has, so
    its outcome space is ``1..max_letters`` and the starting state depends
    on which word was picked.
    """
    protocol = ResourceProtocol("word-game", settings)
    protocol.declare_kind(
        GAME,
        initial_state=NOT_RUNNING,
        terminal_states={NOT_RUNNING},
        states={NOT_RUNNING},
        families=[Running],
        description="A word game that must be declared won or lost before the session ends",
    )

    @protocol.operation(
        GAME,
        outcomes=range(1, max_letters + 1),
        precondition=lambda state: state == NOT_RUNNING,
    )
    def new_game(state: IndexedState, letters: int) -> IndexedState:
        """Start a game on a word with the given number of distinct letters."""
        return Running(max_guesses, letters)

    @protocol.operation(GAME, outcomes={True, False}, precondition=can_guess, arguments=LETTERS)
    def guess(state: IndexedState, correct: bool, letter: str) -> IndexedState:
        """Guess a letter; a hit uncovers it, a miss costs a guess."""
        guesses, letters = state.index
        if correct:
            return Running(guesses, letters - 1)
        return Running(guesses - 1, letters)

    @protocol.operation(GAME, outcomes={None}, precondition=is_won)
    def declare_won(state: IndexedState, _: None) -> IndexedState:
        """End a game with every letter uncovered."""
        return NOT_RUNNING

    @protocol.operation(GAME, outcomes={None}, precondition=is_lost)
    def declare_lost(state: IndexedState, _: None) -> IndexedState:
        """End a game with no guesses left."""
        return NOT_RUNNING

    return protocol


class WordGame:
    """Plays one word against guessed letters, producing the game's outcomes."""

    def __init__(self, word: str) -> None:
        self.word = word.lower()
        self.hidden = set(self.word) & LETTERS
        self.guessed: list[str] = []

    def start(self) -> int:
        return len(self.hidden)

    def guess(self, letter: str) -> bool:
        self.guessed.append(letter)
        if letter in self.hidden:
            self.hidden.discard(letter)
            return True
        return False

    def reveal(self) -> str:
        return "".join(c if c not in self.hidden else "_" for c in self.word)
