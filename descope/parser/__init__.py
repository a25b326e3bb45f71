"""
descope frontend: parses source text into `descope.nodes` trees.

Callers that want diagnostics instead of exceptions use `parse_source`.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from lark.exceptions import UnexpectedInput

from descope.core.diagnostics import Diagnostic
from descope.core.span import Span
from descope.nodes import Program

from .parser import ParseError, parse_program


def parse_source(source: str, path: Path | None = None) -> Tuple[Optional[Program], List[Diagnostic]]:
	"""
	Parse `source`, converting parse failures into parser-phase diagnostics.

	Returns `(program, [])` on success and `(None, diagnostics)` otherwise.
	"""
	file = str(path) if path is not None else None
	try:
		return parse_program(source, file=file), []
	except UnexpectedInput as err:
		span = Span(
			file=file,
			line=getattr(err, "line", None),
			column=getattr(err, "column", None),
			raw=err,
		)
		return None, [Diagnostic(message=str(err).strip().splitlines()[0], code="E0001", phase="parser", span=span)]
	except ParseError as err:
		return None, [Diagnostic(message=str(err), code="E0002", phase="parser", span=err.loc.with_file(file))]


__all__ = ["ParseError", "parse_program", "parse_source"]
