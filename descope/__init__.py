# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
descope: lower block-scoped bindings (`let`/`const`, per-iteration loop
bindings) to function-scoped `var`s plus synthesized closures.

Stages:
  scope_analyzer: scope tree + reference resolution
  binding_classifier: binding kinds, capture sets, const checks
  closure_synthesizer: which scopes become wrappers
  control_flow: early-exit signals and call-site dispatch
  loop_transformer: per-iteration vs shared loop bindings
  desugar: assembles the output tree
"""

from descope.core.errors import (
	DuplicateDeclaration,
	ImmutableRebindingViolation,
	TransformError,
	UnresolvedReference,
	UnsupportedConstruct,
)
from descope.emitter import format_program
from descope.parser import parse_program, parse_source
from descope.pipeline import (
	ProgramResult,
	TransformOptions,
	TransformResult,
	transform_function,
	transform_program,
)

__all__ = [
	"TransformError",
	"UnresolvedReference",
	"DuplicateDeclaration",
	"ImmutableRebindingViolation",
	"UnsupportedConstruct",
	"format_program",
	"parse_program",
	"parse_source",
	"TransformOptions",
	"TransformResult",
	"ProgramResult",
	"transform_function",
	"transform_program",
]
