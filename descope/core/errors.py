# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Error taxonomy for the descope pipeline.

Every fatal condition a stage can hit is a `TransformError`. Errors abort the
transformation of the enclosing top-level function only; the pipeline turns
them into `Diagnostic`s and moves on to the next function (unless running in
strict mode).

Codes:
  E0101 UnresolvedReference
  E0102 DuplicateDeclaration
  E0201 ImmutableRebindingViolation
  E0301 UnsupportedConstruct
"""

from __future__ import annotations

from .diagnostics import Diagnostic
from .span import Span


class TransformError(Exception):
	"""Base class for errors raised by the scope/closure pipeline."""

	code = "E0000"
	phase = "transform"

	def __init__(self, message: str, span: Span | None = None, notes: list[str] | None = None) -> None:
		super().__init__(message)
		self.message = message
		self.span = span or Span()
		self.notes = list(notes or [])

	def to_diagnostic(self, function: str | None = None) -> Diagnostic:
		return Diagnostic(
			message=self.message,
			code=self.code,
			phase=self.phase,
			severity="error",
			span=self.span,
			notes=list(self.notes),
			function=function,
		)

	def __str__(self) -> str:
		if self.span.line is None:
			return self.message
		return f"{self.span.describe()}: {self.message}"


class UnresolvedReference(TransformError):
	"""A name is used but never declared in any enclosing scope (nor a global)."""

	code = "E0101"
	phase = "scope"

	def __init__(self, name: str, span: Span | None = None) -> None:
		super().__init__(f"unresolved reference '{name}'", span)
		self.name = name


class DuplicateDeclaration(TransformError):
	"""Two declarations of one name conflict inside a single scope."""

	code = "E0102"
	phase = "scope"

	def __init__(self, name: str, span: Span | None = None, previous: Span | None = None) -> None:
		notes = []
		if previous is not None and previous.line is not None:
			notes.append(f"previous declaration at {previous.describe()}")
		super().__init__(f"'{name}' is already declared in this scope", span, notes)
		self.name = name


class ImmutableRebindingViolation(TransformError):
	"""An assignment targets a `const` binding."""

	code = "E0201"
	phase = "classify"

	def __init__(self, name: str, span: Span | None = None, declared_at: Span | None = None) -> None:
		notes = []
		if declared_at is not None and declared_at.line is not None:
			notes.append(f"'{name}' declared immutable at {declared_at.describe()}")
		super().__init__(f"assignment to immutable binding '{name}'", span, notes)
		self.name = name


class UnsupportedConstruct(TransformError):
	"""A node shape the transform does not recognize, or a construct used out of place."""

	code = "E0301"
	phase = "transform"


__all__ = [
	"TransformError",
	"UnresolvedReference",
	"DuplicateDeclaration",
	"ImmutableRebindingViolation",
	"UnsupportedConstruct",
]
