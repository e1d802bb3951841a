"""Rich console rendering of protocols and session results.

Example:
    >>> reporter = ConsoleReporter()
    >>> reporter.print_protocol(build_file_protocol())
    >>> reporter.print_result(result)
"""

from __future__ import annotations

import io
import os
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from protoguard.core.session import Aborted, SessionResult
from protoguard.core.state import state_label
from protoguard.errors import ProtoguardError
from protoguard.reporters.base import BaseReporter

if TYPE_CHECKING:
    from protoguard.protocol import ResourceProtocol


class ConsoleReporter(BaseReporter):
    """Human-readable output: protocol overviews, step traces and result panels."""

    SYMBOLS = {"check": "✓", "cross": "✗", "arrow": "→"}
    ASCII_SYMBOLS = {"check": "+", "cross": "x", "arrow": "->"}

    def __init__(
        self,
        console: Console | None = None,
        output_path: str | Path | None = None,
        use_unicode: bool = True,
    ) -> None:
        super().__init__(output_path)
        self.console = console or Console(no_color=bool(os.environ.get("NO_COLOR")))
        self.use_unicode = use_unicode

    @property
    def file_extension(self) -> str:
        return ".txt"

    def _symbol(self, name: str) -> str:
        return (self.SYMBOLS if self.use_unicode else self.ASCII_SYMBOLS)[name]

    def generate(self, results: list[SessionResult]) -> str:
        """Render results to plain text."""
        console = Console(record=True, width=100, no_color=True, file=io.StringIO())
        reporter = ConsoleReporter(console=console, use_unicode=self.use_unicode)
        for result in results:
            reporter.print_result(result)
        return console.export_text()

    def print_protocol(self, protocol: ResourceProtocol) -> None:
        """Show every kind with its operations and reachable states."""
        for kind in protocol.kinds:
            table = Table(title=f"[bold]{kind.name}[/bold]", show_header=True, header_style="bold")
            table.add_column("Operation", min_width=14)
            table.add_column("Argument")
            table.add_column("Outcomes")
            table.add_column("Description")

            for op in protocol.operations.operations_for(kind):
                if not op.parameterized:
                    argument = ""
                elif op.arguments is None:
                    argument = "any"
                else:
                    argument = ", ".join(sorted(state_label(a) for a in op.arguments))
                outcomes = ", ".join(repr(o) for o in _ordered(op.outcomes))
                table.add_row(
                    op.name,
                    escape(_shorten(argument)),
                    escape(_shorten(outcomes)),
                    escape(op.description),
                )

            reachable = protocol.operations.reachable_states(kind)
            gaps = protocol.operations.check_totality(kind)
            summary = Table.grid(padding=(0, 2))
            summary.add_column(style="bold", width=16)
            summary.add_column()
            summary.add_row("Initial:", state_label(kind.initial_state))
            summary.add_row("Terminal:", ", ".join(sorted(state_label(s) for s in kind.terminal_states)))
            summary.add_row("State space:", kind.space.describe())
            summary.add_row("Reachable:", f"[cyan]{len(reachable)}[/cyan] state(s)")
            summary.add_row("Cleanup:", kind.cleanup_operation or "[dim]none[/dim]")
            if gaps:
                summary.add_row("Gaps:", f"[red]{len(gaps)}[/red]")

            self.console.print(Panel(summary, title=f"[bold]{protocol.name}[/bold]", border_style="blue"))
            self.console.print(table)

    def print_trace(self, result: SessionResult) -> None:
        session = result.session
        tree = Tree(f"[bold]{session.kind.name}[/bold] {session.instance.id} ({session.id})")
        tree.add(f"[dim]start[/dim] {state_label(session.initial_state)}")
        for step in session.steps:
            arg = "" if step.argument is None else f"({state_label(step.argument)})"
            tree.add(
                f"[cyan]{step.operation}{arg}[/cyan] => {step.outcome!r} "
                f"{self._symbol('arrow')} [bold]{state_label(step.resulting_state)}[/bold]"
            )
        for failure in session.failures:
            tree.add(f"[red]{self._symbol('cross')} {escape(failure.message)}[/red]")
        self.console.print(tree)

    def print_result(self, result: SessionResult) -> None:
        """Show a session's trace followed by a Completed/Aborted panel."""
        self.print_trace(result)

        color = "green" if result.completed else "red"
        symbol = self._symbol("check") if result.completed else self._symbol("cross")
        summary = Table.grid(padding=(0, 2))
        summary.add_column(style="bold", width=14)
        summary.add_column()
        summary.add_row("Result:", f"[{color} bold]{symbol} {type(result).__name__}[/{color} bold]")
        summary.add_row("Final state:", state_label(result.final_state))
        if isinstance(result, Aborted):
            summary.add_row("Reason:", result.reason.value)
        summary.add_row("Steps:", str(len(result.steps)))
        if result.session.failures:
            summary.add_row("Failed actions:", f"[yellow]{len(result.session.failures)}[/yellow]")

        self.console.print(Panel(summary, border_style=color, padding=(0, 2)))

    def print_error(self, error: ProtoguardError, verbose: bool = False) -> None:
        body = error.format_verbose() if verbose else str(error)
        self.console.print(
            Panel(escape(body), title=f"[bold red]{error.__class__.__name__}[/bold red]", border_style="red")
        )


def _ordered(values: Iterable[Any]) -> list[Any]:
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=repr)


def _shorten(text: str, limit: int = 48) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."
