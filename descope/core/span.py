# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Source locations of tree nodes, errors and diagnostics.

The parser stamps every node with the lark `Meta`/`Token` position it came
from (kept in `raw`). Synthesized nodes and hand-built trees use `Span()`,
whose line and column are unknown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""File, 1-based start line/column and end position of a piece of source."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None
	raw: Any = field(default=None, compare=False, repr=False)

	@classmethod
	def from_loc(cls, loc: Any) -> "Span":
		"""
		Build a Span from a lark `Meta` or `Token` (or pass a Span through).

		Any of the position attributes may be missing; they stay None.
		"""
		if loc is None:
			return cls()
		if isinstance(loc, cls):
			return loc
		return cls(
			file=getattr(loc, "file", None) or getattr(loc, "filename", None) or None,
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			end_line=getattr(loc, "end_line", None),
			end_column=getattr(loc, "end_column", None),
			raw=loc,
		)

	def with_file(self, file: str | None) -> "Span":
		if file is None or self.file is not None:
			return self
		return Span(
			file=file,
			line=self.line,
			column=self.column,
			end_line=self.end_line,
			end_column=self.end_column,
			raw=self.raw,
		)

	def describe(self) -> str:
		"""Render `line:column` (or `?:?` when unknown) for human-readable output."""
		line = self.line if self.line is not None else "?"
		column = self.column if self.column is not None else "?"
		return f"{line}:{column}"


__all__ = ["Span"]
