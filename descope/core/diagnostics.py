"""
Diagnostic records shared by the parser, the pipeline and the driver.

A diagnostic is a message plus span/metadata. Passes raise `TransformError`
subclasses; the pipeline converts them into Diagnostics so a batch run can
report every failing function instead of stopping at the first one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .span import Span


@dataclass
class Diagnostic:
	"""One reported problem: a parse failure, a failed function transform or a `--run` mismatch."""

	message: str
	code: str | None = None
	# Stage that reported it: "parser", "scope", "classify", "transform", "driver" or "run".
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)
	notes: list[str] = field(default_factory=list)
	# Name of the top-level function the diagnostic belongs to, when known.
	function: str | None = None

	def __post_init__(self) -> None:
		# `diag_to_json` and `format_diagnostic` read span fields unconditionally.
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()


def diag_to_json(diag: Diagnostic, phase: str, source: Path | None) -> dict:
	"""Render a Diagnostic to a structured JSON-friendly dict."""
	file = diag.span.file
	if file is None and source is not None:
		file = str(source)
	return {
		"phase": diag.phase or phase,
		"code": diag.code,
		"message": diag.message,
		"severity": diag.severity,
		"function": diag.function,
		"file": file,
		"line": diag.span.line,
		"column": diag.span.column,
		"notes": list(diag.notes),
	}


def format_diagnostic(diag: Diagnostic, source: Path | None) -> str:
	"""Render a Diagnostic as `file:line:col: severity: message`."""
	file = diag.span.file or (str(source) if source is not None else "<input>")
	text = f"{file}:{diag.span.describe()}: {diag.severity}: {diag.message}"
	if diag.code:
		text += f" [{diag.code}]"
	for note in diag.notes:
		text += f"\n  note: {note}"
	return text


__all__ = ["Diagnostic", "diag_to_json", "format_diagnostic"]
