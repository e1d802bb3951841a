"""File handle protocol.

A file is CLOSED, READ_OPEN or WRITE_OPEN. ``open(mode)`` may fail, and
only a successful open moves the handle; ``read`` and ``write`` need the
matching mode; ``close`` is allowed whenever the file is open. A session
completes only once the file is closed again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from protoguard.config import ProtoguardSettings
from protoguard.core.operation import in_states, not_in_states, transition_table
from protoguard.protocol import ResourceProtocol

logger = logging.getLogger(__name__)

FILE = "File"


class FileState(Enum):
    CLOSED = "closed"
    READ_OPEN = "read_open"
    WRITE_OPEN = "write_open"


class Mode(Enum):
    READ = "read"
    WRITE = "write"


OPENED_FOR = {Mode.READ: FileState.READ_OPEN, Mode.WRITE: FileState.WRITE_OPEN}


def build_file_protocol(settings: ProtoguardSettings | None = None) -> ResourceProtocol:
    """Declare the File kind and its four operations."""
    protocol = ResourceProtocol("file", settings)
    protocol.declare_kind(
        FILE,
        initial_state=FileState.CLOSED,
        terminal_states={FileState.CLOSED},
        states=FileState,
        cleanup_operation="close",
        description="A file handle that must be closed before the session ends",
    )

    @protocol.operation(
        FILE,
        outcomes={True, False},
        precondition=in_states(FileState.CLOSED),
        arguments=Mode,
    )
    def open(state: FileState, opened: bool, mode: Mode) -> FileState:  # noqa: A001
        """Open the file; stays CLOSED when the open fails."""
        return OPENED_FOR[mode] if opened else state

    protocol.register_operation(
        FILE,
        "read",
        precondition=in_states(FileState.READ_OPEN),
        outcomes={True, False},
        next_state=lambda state, _ok: state,
        description="Read from a file opened for reading",
    )
    protocol.register_operation(
        FILE,
        "write",
        precondition=in_states(FileState.WRITE_OPEN),
        outcomes={True, False},
        next_state=lambda state, _ok: state,
        description="Write to a file opened for writing",
    )
    protocol.register_operation(
        FILE,
        "close",
        precondition=not_in_states(FileState.CLOSED),
        outcomes={None},
        next_state=transition_table(
            {
                (FileState.READ_OPEN, None): FileState.CLOSED,
                (FileState.WRITE_OPEN, None): FileState.CLOSED,
            }
        ),
        description="Close an open file",
    )
    return protocol


@dataclass
class MemoryFiles:
    """In-memory stand-in for a file system, producing the outcomes the protocol expects.

    Each method is meant to be wrapped in a zero-argument action, e.g.
    ``lambda: files.open("notes.txt", Mode.READ)``.
    """

    contents: dict[str, str] = field(default_factory=dict)
    read_only: set[str] = field(default_factory=set)
    current: str | None = None
    mode: Mode | None = None
    buffer: list[str] = field(default_factory=list)
    lines_read: list[str] = field(default_factory=list)

    def open(self, path: str, mode: Mode) -> bool:
        if mode is Mode.READ and path not in self.contents:
            logger.debug("Cannot open %s for reading: no such file", path)
            return False
        if mode is Mode.WRITE and path in self.read_only:
            logger.debug("Cannot open %s for writing: read-only", path)
            return False
        self.current, self.mode = path, mode
        self.buffer = []
        self.lines_read = []
        return True

    def read_line(self) -> bool:
        if self.current is None or self.mode is not Mode.READ:
            logger.debug("Cannot read: no file open for reading")
            return False
        lines = self.contents[self.current].splitlines()
        if len(self.lines_read) >= len(lines):
            return False
        self.lines_read.append(lines[len(self.lines_read)])
        return True

    def write_line(self, line: str) -> bool:
        if self.current is None or self.mode is not Mode.WRITE:
            logger.debug("Cannot write: no file open for writing")
            return False
        self.buffer.append(line)
        return True

    def close(self) -> Any:
        if self.current is not None and self.mode is Mode.WRITE:
            self.contents[self.current] = "\n".join(self.buffer)
        self.current, self.mode = None, None
        return None
