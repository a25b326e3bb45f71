# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
descope pipeline: run every stage over one function, or over a whole program.

Stages, each consuming only the previous stages' output:

  analyze_function → classify_bindings → synthesize_closures → plan_loops → desugar_function

`transform_function` raises the first `TransformError`. `transform_program`
isolates failures per top-level function: a failing function is left out of
the output program and reported as a Diagnostic, its siblings still
transform. With `TransformOptions(strict=True)` the first error propagates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional

from descope.binding_classifier import BindingClassification, classify_bindings
from descope.closure_synthesizer import ClosurePlan, synthesize_closures
from descope.core.diagnostics import Diagnostic
from descope.core.errors import TransformError
from descope.desugar import desugar_function
from descope.loop_transformer import LoopPlan, plan_loops
from descope.nodes import MAIN_FUNCTION, FunctionDef, NodeId, Program
from descope.runtime import BUILTIN_NAMES
from descope.scope_analyzer import ScopeAnalysis, analyze_function


@dataclass(frozen=True)
class TransformOptions:
	hoist_loop_closures: bool = True
	# Names resolvable outside every function, in addition to the builtins
	# and the program's own top-level functions.
	globals: FrozenSet[str] = frozenset()
	strict: bool = False


@dataclass
class PipelineStages:
	"""Intermediate results of one function's run (kept for tests and `--json`)."""

	analysis: ScopeAnalysis
	classification: BindingClassification
	closures: ClosurePlan
	loops: Dict[NodeId, LoopPlan]


@dataclass
class TransformResult:
	name: str
	function: Optional[FunctionDef]
	diagnostics: List[Diagnostic] = field(default_factory=list)
	stages: Optional[PipelineStages] = None

	@property
	def ok(self) -> bool:
		return self.function is not None and not self.diagnostics


@dataclass
class ProgramResult:
	program: Program
	results: List[TransformResult] = field(default_factory=list)

	@property
	def diagnostics(self) -> List[Diagnostic]:
		return [diag for result in self.results for diag in result.diagnostics]

	@property
	def ok(self) -> bool:
		return all(result.ok for result in self.results)


def run_stages(
	fn: FunctionDef,
	globals: Iterable[str] = (),
	*,
	hoist_loop_closures: bool = True,
) -> PipelineStages:
	"""Run the analysis stages (everything but the final desugaring)."""
	analysis = analyze_function(fn, globals)
	classification = classify_bindings(analysis)
	closures = synthesize_closures(fn, analysis, classification)
	loops = plan_loops(fn, analysis, classification, closures, hoist_loop_closures=hoist_loop_closures)
	return PipelineStages(analysis=analysis, classification=classification, closures=closures, loops=loops)


def _resolve_globals(options: TransformOptions, extra: Iterable[str] = ()) -> FrozenSet[str]:
	return BUILTIN_NAMES | options.globals | frozenset(extra)


def transform_function(fn: FunctionDef, options: TransformOptions | None = None) -> FunctionDef:
	"""Transform one function; raises `TransformError` on failure."""
	opts = options or TransformOptions()
	stages = run_stages(fn, _resolve_globals(opts, [fn.name]), hoist_loop_closures=opts.hoist_loop_closures)
	return desugar_function(fn, stages.analysis, stages.classification, stages.closures, stages.loops)


def try_transform_function(
	fn: FunctionDef,
	options: TransformOptions | None = None,
	*,
	globals: Iterable[str] = (),
) -> TransformResult:
	"""Transform one function, converting a `TransformError` into a Diagnostic."""
	opts = options or TransformOptions()
	try:
		stages = run_stages(fn, _resolve_globals(opts, globals), hoist_loop_closures=opts.hoist_loop_closures)
		lowered = desugar_function(fn, stages.analysis, stages.classification, stages.closures, stages.loops)
	except TransformError as err:
		if opts.strict:
			raise
		return TransformResult(name=fn.name, function=None, diagnostics=[err.to_diagnostic(fn.name)])
	return TransformResult(name=fn.name, function=lowered, stages=stages)


def transform_program(program: Program, options: TransformOptions | None = None) -> ProgramResult:
	"""
	Transform every top-level function and the implicit main body.

	Top-level function names are globals for every function, so functions may
	call each other regardless of definition order.
	"""
	opts = options or TransformOptions()
	function_names = [fn.name for fn in program.functions]
	results: List[TransformResult] = []
	functions: List[FunctionDef] = []
	for fn in program.functions:
		result = try_transform_function(fn, opts, globals=function_names)
		results.append(result)
		if result.function is not None:
			functions.append(result.function)
	statements = []
	if program.statements:
		main = try_transform_function(program.main_function(), opts, globals=function_names)
		results.append(main)
		if main.function is not None:
			statements = list(main.function.body.statements)
	return ProgramResult(program=Program(functions=functions, statements=statements), results=results)


__all__ = [
	"MAIN_FUNCTION",
	"TransformOptions",
	"PipelineStages",
	"TransformResult",
	"ProgramResult",
	"run_stages",
	"transform_function",
	"try_transform_function",
	"transform_program",
]
