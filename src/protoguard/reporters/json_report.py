"""JSON reporter for session results."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from protoguard.core.session import SessionResult
from protoguard.reporters.base import BaseReporter


class JSONReporter(BaseReporter):
    """Machine-readable report: summary counts plus every session's trace."""

    @property
    def file_extension(self) -> str:
        return ".json"

    def __init__(self, output_path: str | Path | None = None, indent: int | None = 2) -> None:
        super().__init__(output_path)
        self.indent = indent

    def generate(self, results: list[SessionResult]) -> str:
        return json.dumps(self._build_report(results), indent=self.indent, default=str)

    def _build_report(self, results: list[SessionResult]) -> dict[str, Any]:
        completed = sum(1 for r in results if r.completed)
        return {
            "generated_at": datetime.now().isoformat(),
            "summary": {
                "sessions": len(results),
                "completed": completed,
                "aborted": len(results) - completed,
                "steps": sum(len(r.steps) for r in results),
            },
            "sessions": [r.to_dict() for r in results],
        }
