# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Closure synthesis: decide which block scopes are replaced by an immediately
invoked closure (a "wrapper") and describe each wrapper.

Pipeline placement:
  BindingClassification → synthesize_closures → ClosurePlan → control flow / loop stages

A block or loop-body scope is wrapped exactly when some closure nested inside
it captures one of its bindings. Every other block-scoped binding is inlined
as a plain `var` of the enclosing function (or wrapper).

A loop whose header scope or body scope needs a wrapper gets a single
loop-body wrapper covering both; its per-iteration header bindings become
wrapper parameters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Set, Tuple

from descope.binding_classifier import BindingClassification
from descope.nodes import (
	Block,
	Break,
	Continue,
	FunctionDef,
	If,
	Loop,
	Node,
	NodeId,
	Return,
	SignalKind,
	Stmt,
	iter_children,
	var_declarations,
)
from descope.scope_analyzer import BindingId, ScopeAnalysis, ScopeId


@dataclass(frozen=True)
class ClosureSpec:
	"""One synthesized wrapper."""

	node_id: NodeId  # Block node for block wrappers, Loop node for loop-body wrappers
	scope_id: ScopeId
	locals: Tuple[BindingId, ...] = ()
	params: Tuple[BindingId, ...] = ()
	exits: FrozenSet[SignalKind] = frozenset()
	# Scopes whose bindings live inside the wrapper.
	covered_scopes: FrozenSet[ScopeId] = frozenset()
	# `var` bindings declared in the wrapped body; they belong to the
	# enclosing function, which declares them instead.
	hoisted_vars: Tuple[BindingId, ...] = ()
	loop_id: Optional[NodeId] = None

	@property
	def may_exit(self) -> bool:
		return bool(self.exits)

	@property
	def is_loop_body(self) -> bool:
		return self.loop_id is not None


@dataclass(frozen=True)
class ClosurePlan:
	block_wrappers: Mapping[NodeId, ClosureSpec] = field(default_factory=dict)
	loop_wrappers: Mapping[NodeId, ClosureSpec] = field(default_factory=dict)

	def for_block(self, node_id: NodeId) -> Optional[ClosureSpec]:
		return self.block_wrappers.get(node_id)

	def for_loop(self, loop_id: NodeId) -> Optional[ClosureSpec]:
		return self.loop_wrappers.get(loop_id)

	def specs(self) -> List[ClosureSpec]:
		"""All wrappers ordered by position in the function."""
		merged = list(self.block_wrappers.values()) + list(self.loop_wrappers.values())
		return sorted(merged, key=lambda spec: spec.node_id)

	def wrapped_scopes(self) -> Set[ScopeId]:
		covered: Set[ScopeId] = set()
		for spec in self.specs():
			covered.update(spec.covered_scopes)
		return covered


def collect_exits(statements: List[Stmt]) -> FrozenSet[SignalKind]:
	"""
	Early-exit signals a closure wrapping `statements` may produce.

	`return` always leaves the wrapper; `break`/`continue` leave it when they
	are not nested in a loop inside the wrapped statements. Nested function
	expressions are not statements, so their returns are never visited.
	"""
	exits: Set[SignalKind] = set()

	def _walk(stmts: List[Stmt], loop_depth: int) -> None:
		for stmt in stmts:
			if isinstance(stmt, Return):
				exits.add(SignalKind.RETURN)
			elif isinstance(stmt, Break):
				if loop_depth == 0:
					exits.add(SignalKind.BREAK)
			elif isinstance(stmt, Continue):
				if loop_depth == 0:
					exits.add(SignalKind.CONTINUE)
			elif isinstance(stmt, Block):
				_walk(stmt.statements, loop_depth)
			elif isinstance(stmt, If):
				_walk(stmt.then_block.statements, loop_depth)
				if stmt.else_block is not None:
					_walk(stmt.else_block.statements, loop_depth)
			elif isinstance(stmt, Loop):
				_walk(stmt.body.statements, loop_depth + 1)

	_walk(statements, 0)
	return frozenset(exits)


class ClosureSynthesizer:
	def __init__(self, analysis: ScopeAnalysis, classification: BindingClassification) -> None:
		self.analysis = analysis
		self.classification = classification
		self._loop_body_scopes = {
			info.body_scope for info in analysis.loops.values() if info.body_scope is not None
		}

	def _needs_wrapper(self, scope_id: Optional[ScopeId]) -> bool:
		if scope_id is None:
			return False
		return any(self.classification.is_captured(bid) for bid in self.analysis.scope(scope_id).binding_ids)

	def _hoisted(self, statements: List[Stmt]) -> Tuple[BindingId, ...]:
		ordered: Dict[BindingId, None] = {}
		for decl in var_declarations(statements):
			bid = self.analysis.declarations.get(decl.node_id)
			if bid is not None:
				ordered[bid] = None
		return tuple(ordered)

	def synthesize(self, fn: FunctionDef) -> ClosurePlan:
		block_wrappers: Dict[NodeId, ClosureSpec] = {}
		loop_wrappers: Dict[NodeId, ClosureSpec] = {}
		stack: List[Node] = [fn]
		while stack:
			node = stack.pop()
			if isinstance(node, Loop):
				spec = self._loop_spec(node)
				if spec is not None:
					loop_wrappers[node.node_id] = spec
			elif isinstance(node, Block):
				spec = self._block_spec(node)
				if spec is not None:
					block_wrappers[node.node_id] = spec
			stack.extend(reversed(list(iter_children(node))))
		return ClosurePlan(block_wrappers=block_wrappers, loop_wrappers=loop_wrappers)

	def _block_spec(self, block: Block) -> Optional[ClosureSpec]:
		scope_id = self.analysis.block_scopes.get(block.node_id)
		if scope_id is None or scope_id in self._loop_body_scopes:
			return None
		if not self._needs_wrapper(scope_id):
			return None
		return ClosureSpec(
			node_id=block.node_id,
			scope_id=scope_id,
			locals=tuple(self.analysis.scope(scope_id).binding_ids),
			exits=collect_exits(block.statements),
			covered_scopes=frozenset({scope_id}),
			hoisted_vars=self._hoisted(block.statements),
		)

	def _loop_spec(self, loop: Loop) -> Optional[ClosureSpec]:
		info = self.analysis.loops.get(loop.node_id)
		if info is None:
			return None
		if not (self._needs_wrapper(info.header_scope) or self._needs_wrapper(info.body_scope)):
			return None
		params: Tuple[BindingId, ...] = ()
		covered: Set[ScopeId] = set()
		if info.header_scope is not None:
			params = tuple(
				bid
				for bid in self.analysis.scope(info.header_scope).binding_ids
				if self.classification.is_per_iteration(bid)
			)
		locals_: Tuple[BindingId, ...] = ()
		if info.body_scope is not None:
			locals_ = tuple(self.analysis.scope(info.body_scope).binding_ids)
			covered.add(info.body_scope)
		if params and info.header_scope is not None:
			covered.add(info.header_scope)
		return ClosureSpec(
			node_id=loop.node_id,
			scope_id=info.header_scope if info.header_scope is not None else info.body_scope,  # type: ignore[arg-type]
			locals=locals_,
			params=params,
			exits=collect_exits(loop.body.statements),
			covered_scopes=frozenset(covered),
			hoisted_vars=self._hoisted(loop.body.statements),
			loop_id=loop.node_id,
		)


def synthesize_closures(
	fn: FunctionDef,
	analysis: ScopeAnalysis,
	classification: BindingClassification,
) -> ClosurePlan:
	return ClosureSynthesizer(analysis, classification).synthesize(fn)


__all__ = ["ClosureSpec", "ClosurePlan", "ClosureSynthesizer", "collect_exits", "synthesize_closures"]
