"""protoguard CLI - command line interface for protoguard."""

from protoguard.cli.commands import cli


def main() -> None:
    """Main entry point for the protoguard CLI."""
    cli()


__all__ = ["cli", "main"]
