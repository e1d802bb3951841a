"""CLI commands for protoguard."""

from __future__ import annotations

import importlib
import inspect
import json
import logging
import sys
from typing import Any

import click

from protoguard.config import ProtoguardSettings, load_settings
from protoguard.core.session import Call, Session, SessionResult
from protoguard.core.state import state_label
from protoguard.errors import ProtoguardError
from protoguard.observability import configure_logging
from protoguard.protocol import ResourceProtocol
from protoguard.protocols import (
    FILE,
    GAME,
    NOT_RUNNING,
    FileState,
    MemoryFiles,
    Mode,
    WordGame,
    build_file_protocol,
    build_word_game_protocol,
)
from protoguard.reporters import ConsoleReporter, JSONReporter

logger = logging.getLogger(__name__)

GUESS_ORDER = "etaoinshrdlcumwfgypbvkjxqz"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to a YAML config file")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None, json_logs: bool) -> None:
    """protoguard - protocol-checked resource tracking."""
    ctx.ensure_object(dict)

    try:
        settings = load_settings(config)
    except ProtoguardError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=json_logs or settings.log_json,
    )
    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose


@cli.command("inspect")
@click.argument("target")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.pass_context
def inspect_protocol(ctx: click.Context, target: str, output_format: str) -> None:
    """Show the kinds, operations and reachable states of a protocol.

    TARGET is MODULE:ATTR naming a ResourceProtocol, or a callable that
    builds one, e.g. protoguard.protocols:build_file_protocol.
    """
    try:
        protocol = load_protocol(target, ctx.obj["settings"])
    except ProtoguardError as e:
        ConsoleReporter().print_error(e, verbose=ctx.obj["verbose"])
        sys.exit(1)
    except (ImportError, AttributeError, TypeError, ValueError) as e:
        click.echo(f"Error: cannot load {target}: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(describe_protocol(protocol), indent=2, default=str))
    else:
        ConsoleReporter().print_protocol(protocol)


@cli.command()
@click.argument("name", type=click.Choice(["file", "word-game"]))
@click.option("--word", default="notes", show_default=True, help="Word for the word-game demo")
@click.option(
    "--skip-ending",
    is_flag=True,
    help="Leave out the final close/declare step to show an aborted session",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.pass_context
def demo(ctx: click.Context, name: str, word: str, skip_ending: bool, output_format: str) -> None:
    """Run one of the bundled protocols against an in-memory implementation.

    Exits 0 when the session completes and 1 when it is aborted.
    """
    settings: ProtoguardSettings = ctx.obj["settings"]
    try:
        if name == "file":
            result = run_file_demo(settings, skip_close=skip_ending)
        else:
            result = run_word_game_demo(settings, word, skip_declare=skip_ending)
    except ProtoguardError as e:
        ConsoleReporter().print_error(e, verbose=ctx.obj["verbose"])
        sys.exit(1)

    if output_format == "json":
        click.echo(JSONReporter().generate([result]))
    else:
        ConsoleReporter().print_result(result)

    sys.exit(0 if result.completed else 1)


def load_protocol(target: str, settings: ProtoguardSettings | None = None) -> ResourceProtocol:
    """Resolve MODULE:ATTR to a ResourceProtocol."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError("expected MODULE:ATTR")

    obj: Any = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)

    if callable(obj) and not isinstance(obj, ResourceProtocol):
        if "settings" in inspect.signature(obj).parameters:
            obj = obj(settings=settings)
        else:
            obj = obj()
    if not isinstance(obj, ResourceProtocol):
        raise TypeError(f"{target} is {type(obj).__name__}, not a ResourceProtocol")
    return obj


def describe_protocol(protocol: ResourceProtocol) -> dict[str, Any]:
    kinds = []
    for kind in protocol.kinds:
        kinds.append(
            {
                "name": kind.name,
                "initial_state": state_label(kind.initial_state),
                "terminal_states": sorted(state_label(s) for s in kind.terminal_states),
                "state_space": kind.space.describe(),
                "cleanup_operation": kind.cleanup_operation,
                "reachable_states": sorted(
                    state_label(s) for s in protocol.operations.reachable_states(kind)
                ),
                "operations": [
                    {
                        "name": op.name,
                        "parameterized": op.parameterized,
                        "arguments": (
                            sorted(state_label(a) for a in op.arguments)
                            if op.arguments is not None
                            else None
                        ),
                        "outcomes": sorted(repr(o) for o in op.outcomes),
                        "description": op.description,
                    }
                    for op in protocol.operations.operations_for(kind)
                ],
            }
        )
    return {"protocol": protocol.name, "kinds": kinds}


def run_file_demo(settings: ProtoguardSettings, skip_close: bool = False) -> SessionResult:
    """Open a file for reading, read it to the end, then close it."""
    protocol = build_file_protocol(settings)
    files = MemoryFiles(contents={"notes.txt": "first line\nsecond line"})

    def script(session: Session) -> Call | None:
        match session.state:
            case FileState.CLOSED if not session.steps:
                return Call("open", lambda: files.open("notes.txt", Mode.READ), Mode.READ)
            case FileState.READ_OPEN if session.last_outcome is not False:
                return Call("read", files.read_line)
            case FileState.READ_OPEN if not skip_close:
                return Call("close", files.close)
        return None

    result = protocol.run_session(FILE, FileState.CLOSED, script)
    logger.info("File demo read %d line(s)", len(files.lines_read))
    return result


def run_word_game_demo(settings: ProtoguardSettings, word: str, skip_declare: bool = False) -> SessionResult:
    """Play ``word`` by guessing letters in English frequency order."""
    protocol = build_word_game_protocol(settings=settings)
    game = WordGame(word)
    letters = iter(GUESS_ORDER)

    def script(session: Session) -> Call | None:
        state = session.state
        if state == NOT_RUNNING:
            if session.steps:
                return None
            return Call("new_game", game.start)
        if skip_declare and not session.can_invoke("guess"):
            return None
        if session.can_invoke("declare_won"):
            return Call("declare_won", lambda: None)
        if session.can_invoke("declare_lost"):
            return Call("declare_lost", lambda: None)
        letter = next(letters)
        return Call("guess", lambda: game.guess(letter), letter)

    result = protocol.run_session(GAME, NOT_RUNNING, script)
    logger.info("Word game ended with %s after guesses %s", game.reveal(), "".join(game.guessed))
    return result
