"""Reference protocols shipped with protoguard."""

from protoguard.protocols.file import FILE, FileState, MemoryFiles, Mode, build_file_protocol
from protoguard.protocols.word_game import (
    GAME,
    NOT_RUNNING,
    Running,
    WordGame,
    build_word_game_protocol,
)

__all__ = [
    "FILE",
    "FileState",
    "GAME",
    "MemoryFiles",
    "Mode",
    "NOT_RUNNING",
    "Running",
    "WordGame",
    "build_file_protocol",
    "build_word_game_protocol",
]
