# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Loop planning: per-iteration freshness of loop header bindings and hoisting
of loop-body wrappers.

Pipeline placement:
  ClosurePlan → plan_loops → {loop NodeId: LoopPlan} → desugar

A loop-scoped header binding that a closure captures must be a distinct
instance in every iteration. The wrapper around the body takes it as a
parameter; the loop itself advances a separate "driver" variable. For C-style
loops whose body writes the binding, the parameter is copied back into the
driver before every wrapper exit so the header's condition and update observe
the write.

A loop-body wrapper is constructed once before the loop (hoisted) when no
per-iteration binding it captures could differ between iterations; otherwise
it is constructed in every iteration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple

from descope.binding_classifier import BindingClassification
from descope.closure_synthesizer import ClosurePlan, ClosureSpec
from descope.core.span import Span
from descope.nodes import (
	Assignment,
	Block,
	Call,
	Declaration,
	DeclKind,
	Expr,
	ForHeader,
	FunctionDef,
	Loop,
	LoopHeader,
	Name,
	Node,
	NodeId,
	Stmt,
	iter_children,
)
from descope.scope_analyzer import BindingId, ScopeAnalysis


class Freshness(Enum):
	FRESH = "fresh"  # new instance per iteration (wrapper parameter)
	SHARED = "shared"  # one variable for the whole loop


@dataclass(frozen=True)
class LoopPlan:
	loop_id: NodeId
	header_bindings: Tuple[BindingId, ...] = ()
	fresh: Tuple[BindingId, ...] = ()
	write_back: Tuple[BindingId, ...] = ()
	wrapper: Optional[ClosureSpec] = None
	hoist: bool = False

	@property
	def shared(self) -> Tuple[BindingId, ...]:
		return tuple(bid for bid in self.header_bindings if bid not in self.fresh)

	def freshness(self, binding_id: BindingId) -> Freshness:
		return Freshness.FRESH if binding_id in self.fresh else Freshness.SHARED


def _subtree_ids(root: Node) -> Set[NodeId]:
	ids: Set[NodeId] = set()
	stack: List[Node] = [root]
	while stack:
		node = stack.pop()
		ids.add(node.node_id)
		stack.extend(iter_children(node))
	return ids


class LoopTransformer:
	def __init__(
		self,
		analysis: ScopeAnalysis,
		classification: BindingClassification,
		closures: ClosurePlan,
		*,
		hoist_loop_closures: bool = True,
	) -> None:
		self.analysis = analysis
		self.classification = classification
		self.closures = closures
		self.hoist_loop_closures = hoist_loop_closures

	def plan(self, fn: FunctionDef) -> Dict[NodeId, LoopPlan]:
		plans: Dict[NodeId, LoopPlan] = {}
		stack: List[Node] = [fn]
		while stack:
			node = stack.pop()
			if isinstance(node, Loop):
				plans[node.node_id] = self.plan_loop(node)
			stack.extend(reversed(list(iter_children(node))))
		return plans

	def plan_loop(self, loop: Loop) -> LoopPlan:
		info = self.analysis.loops[loop.node_id]
		header_bindings: Tuple[BindingId, ...] = ()
		if info.header_scope is not None:
			header_bindings = tuple(self.analysis.scope(info.header_scope).binding_ids)
		wrapper = self.closures.for_loop(loop.node_id)
		if wrapper is None:
			return LoopPlan(loop_id=loop.node_id, header_bindings=header_bindings)
		fresh = tuple(bid for bid in header_bindings if bid in wrapper.params)
		body_ids = _subtree_ids(loop.body)
		write_back: Tuple[BindingId, ...] = ()
		if isinstance(loop.header, ForHeader):
			write_back = tuple(
				bid
				for bid in fresh
				if any(node_id in body_ids for node_id in self.classification.writes.get(bid, ()))
			)
		hoist = self.hoist_loop_closures and not self._captures_per_iteration(wrapper, body_ids)
		return LoopPlan(
			loop_id=loop.node_id,
			header_bindings=header_bindings,
			fresh=fresh,
			write_back=write_back,
			wrapper=wrapper,
			hoist=hoist,
		)

	def _captures_per_iteration(self, wrapper: ClosureSpec, body_ids: Set[NodeId]) -> bool:
		"""True when the wrapper body refers to a per-iteration binding it does not receive as a parameter."""
		for ref in self.analysis.references:
			if ref.binding_id is None or ref.node_id not in body_ids:
				continue
			if ref.binding_id in wrapper.params:
				continue
			binding = self.analysis.binding(ref.binding_id)
			if binding.scope_id in body_ids:
				continue
			if self.classification.is_per_iteration(ref.binding_id):
				return True
		return False


def plan_loops(
	fn: FunctionDef,
	analysis: ScopeAnalysis,
	classification: BindingClassification,
	closures: ClosurePlan,
	*,
	hoist_loop_closures: bool = True,
) -> Dict[NodeId, LoopPlan]:
	transformer = LoopTransformer(analysis, classification, closures, hoist_loop_closures=hoist_loop_closures)
	return transformer.plan(fn)


def write_back_statements(pairs: List[Tuple[str, str]]) -> List[Stmt]:
	"""`driver = param;` for every (driver, param) pair."""
	return [Assignment(target=Name(driver), value=Name(param)) for driver, param in pairs]


def build_wrapped_loop(
	header: LoopHeader,
	wrapper_fn: Expr,
	args: List[Expr],
	dispatch: Callable[[Expr], List[Stmt]],
	*,
	hoist_name: Optional[str] = None,
	loc: Span | None = None,
) -> List[Stmt]:
	"""
	Assemble a loop whose body is a single wrapper call.

	With `hoist_name` the wrapper is bound once before the loop and the body
	calls it by name; otherwise the wrapper expression is constructed and
	called in every iteration.
	"""
	span = loc or Span()
	prefix: List[Stmt] = []
	callee = wrapper_fn
	if hoist_name is not None:
		prefix.append(Declaration(name=hoist_name, kind=DeclKind.VAR, value=wrapper_fn, loc=span))
		callee = Name(hoist_name, span)
	call = Call(func=callee, args=args, loc=span)
	body = Block(statements=dispatch(call), loc=span)
	return prefix + [Loop(header=header, body=body, loc=span)]


__all__ = [
	"Freshness",
	"LoopPlan",
	"LoopTransformer",
	"plan_loops",
	"write_back_statements",
	"build_wrapped_loop",
]
