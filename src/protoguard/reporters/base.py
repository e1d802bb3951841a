"""Base reporter for session results.

Reporters turn SessionResult objects into an output format (a rich console
rendering, JSON). Subclasses implement ``generate``; ``save`` writes the
generated content to disk.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from protoguard.core.session import SessionResult


class BaseReporter(ABC):
    """Abstract base class for all protoguard reporters.

    Attributes:
        output_path: Optional default path for saving reports.
    """

    def __init__(self, output_path: str | Path | None = None) -> None:
        self.output_path = Path(output_path) if output_path else None

    @property
    @abstractmethod
    def file_extension(self) -> str:
        ...

    @abstractmethod
    def generate(self, results: list[SessionResult]) -> str | dict[str, Any]:
        """Generate a report from session results."""
        ...

    def save(self, results: list[SessionResult], path: str | Path | None = None) -> Path:
        """Write the generated report, creating parent directories.

        Raises:
            ValueError: If no path is given and none was set in the constructor.
        """
        output_path = Path(path) if path else self.output_path
        if not output_path:
            raise ValueError(
                "Output path required for saving report. "
                "Provide 'path' argument or set 'output_path' in constructor."
            )

        content = self.generate(results)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(str(content), encoding="utf-8")
        return output_path
