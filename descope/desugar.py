# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Assembly: rebuild a function so that it only uses function-scoped bindings.

Pipeline placement:
  ScopeAnalysis + BindingClassification + ClosurePlan + LoopPlans → Desugarer → FunctionDef

The output is built from fresh nodes; the input tree is never modified.

Output regions are the real functions (the transformed function itself and
every nested function expression) and the synthesized wrappers. Each region
hosts some bindings as `var`s:

- a function hosts its parameters, its own `var`s and the `let`/`const`
  declared directly in its body, keeping their names,
- a wrapper hosts the bindings of the scopes it covers (locals, plus the
  per-iteration header bindings it takes as parameters),
- every other block-scoped binding is inlined into the region around it.

An inlined binding keeps its name only when no other binding of the function
and no referenced global shares it; otherwise it becomes `name$N`. Names
containing `$` cannot be written in source, so synthesized names never clash
with user names.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from descope.binding_classifier import BindingClassification
from descope.closure_synthesizer import ClosurePlan, ClosureSpec
from descope.control_flow import CallSite, call_statements, epilogue, exit_statements
from descope.core.errors import UnsupportedConstruct
from descope.loop_transformer import LoopPlan, build_wrapped_loop, write_back_statements
from descope.nodes import (
	ArrayLiteral,
	Assignment,
	Binary,
	Block,
	Break,
	Call,
	Continue,
	Declaration,
	DeclKind,
	Expr,
	ExprStmt,
	ForHeader,
	ForOfHeader,
	FunctionDef,
	FunctionExpr,
	If,
	Index,
	Literal,
	Loop,
	LoopHeader,
	Name,
	NodeId,
	Return,
	SignalExpr,
	SignalIs,
	SignalKind,
	SignalValue,
	Stmt,
	Unary,
	WhileHeader,
)
from descope.scope_analyzer import BindingId, ScopeAnalysis, ScopeKind


class RegionKind(Enum):
	FUNCTION = "function"
	WRAPPER = "wrapper"


@dataclass
class _Region:
	kind: RegionKind
	parent: Optional["_Region"] = None
	# Loops opened inside this region around the current position.
	loop_depth: int = 0
	# Function regions: `var` bindings whose declarations moved into wrappers.
	hoisted: Dict[BindingId, None] = field(default_factory=dict)
	# Loop wrappers: (driver, parameter) pairs copied back before every exit.
	write_backs: List[Tuple[str, str]] = field(default_factory=list)

	def function_region(self) -> "_Region":
		region: Optional[_Region] = self
		while region is not None:
			if region.kind is RegionKind.FUNCTION:
				return region
			region = region.parent
		raise AssertionError("wrapper region outside of any function")

	def write_back_stmts(self) -> List[Stmt]:
		return write_back_statements(self.write_backs)

	def call_site(self, *, inside_loop: bool | None = None) -> CallSite:
		return CallSite(
			in_wrapper=self.kind is RegionKind.WRAPPER,
			inside_loop=self.loop_depth > 0 if inside_loop is None else inside_loop,
		)


class Desugarer:
	def __init__(
		self,
		analysis: ScopeAnalysis,
		classification: BindingClassification,
		closures: ClosurePlan,
		loops: Dict[NodeId, LoopPlan],
	) -> None:
		self.analysis = analysis
		self.classification = classification
		self.closures = closures
		self.loops = loops
		self._taken: Set[str] = {b.name for b in analysis.bindings.values()} | set(analysis.globals_used)
		self._counter = 0
		self._overrides: Dict[BindingId, str] = {}
		self.names: Dict[BindingId, str] = self._assign_names()

	# Naming

	def _fresh(self, prefix: str) -> str:
		while True:
			self._counter += 1
			candidate = f"{prefix}{self._counter}"
			if candidate not in self._taken:
				self._taken.add(candidate)
				return candidate

	def _assign_names(self) -> Dict[BindingId, str]:
		counts = Counter(b.name for b in self.analysis.bindings.values())
		hosted_by_wrapper: Set[BindingId] = set()
		for spec in self.closures.specs():
			hosted_by_wrapper.update(spec.locals)
			hosted_by_wrapper.update(spec.params)
		names: Dict[BindingId, str] = {}
		for binding in self.analysis.bindings.values():
			owner = self.analysis.scope(binding.scope_id)
			if owner.kind is ScopeKind.FUNCTION or binding.binding_id in hosted_by_wrapper:
				names[binding.binding_id] = binding.name
				continue
			if counts[binding.name] > 1 or binding.name in self.analysis.globals_used:
				names[binding.binding_id] = self._fresh(f"{binding.name}$")
			else:
				names[binding.binding_id] = binding.name
		# A loop body may redeclare its header binding; both live in one wrapper.
		for spec in self.closures.specs():
			param_names = {names[bid] for bid in spec.params}
			for bid in spec.locals:
				if names[bid] in param_names:
					names[bid] = self._fresh(f"{names[bid]}$")
		return names

	def _name_of(self, binding_id: BindingId) -> str:
		return self._overrides.get(binding_id) or self.names[binding_id]

	def _ref_name(self, node: Name) -> str:
		ref = self.analysis.reference_at(node.node_id)
		if ref is None or ref.binding_id is None:
			return node.ident
		return self._name_of(ref.binding_id)

	# Functions

	def lower_function(self, fn: FunctionDef) -> FunctionDef:
		region = _Region(kind=RegionKind.FUNCTION)
		body = self._lower_function_body(fn.body, region)
		return FunctionDef(name=fn.name, params=list(fn.params), body=body, loc=fn.loc)

	def _lower_function_body(self, body: Block, region: _Region) -> Block:
		stmts = self._lower_stmts(body.statements, region)
		hoisted: List[Stmt] = [
			Declaration(name=self.names[bid], kind=DeclKind.VAR) for bid in region.hoisted
		]
		return Block(statements=hoisted + stmts, loc=body.loc)

	# Statements

	def _lower_stmts(self, stmts: List[Stmt], region: _Region) -> List[Stmt]:
		out: List[Stmt] = []
		for stmt in stmts:
			out.extend(self._lower_stmt(stmt, region))
		return out

	def _lower_stmt(self, stmt: Stmt, region: _Region) -> List[Stmt]:
		if isinstance(stmt, Declaration):
			return self._lower_declaration(stmt, region)
		if isinstance(stmt, Assignment):
			if isinstance(stmt.target, Name):
				target: Expr = Name(self._ref_name(stmt.target), stmt.target.loc)
			else:
				target = self._lower_expr(stmt.target, region)
			return [Assignment(target=target, value=self._lower_expr(stmt.value, region), loc=stmt.loc)]
		if isinstance(stmt, ExprStmt):
			return [ExprStmt(expr=self._lower_expr(stmt.expr, region), loc=stmt.loc)]
		if isinstance(stmt, Block):
			spec = self.closures.for_block(stmt.node_id)
			if spec is not None:
				return self._wrap_block(spec, stmt, region)
			return [Block(statements=self._lower_stmts(stmt.statements, region), loc=stmt.loc)]
		if isinstance(stmt, If):
			condition = self._lower_expr(stmt.condition, region)
			then_block = self._lower_branch(stmt.then_block, region)
			else_block = None
			if stmt.else_block is not None:
				else_block = self._lower_branch(stmt.else_block, region)
			return [If(condition=condition, then_block=then_block, else_block=else_block, loc=stmt.loc)]
		if isinstance(stmt, Loop):
			return self._lower_loop(stmt, region)
		if isinstance(stmt, Return):
			value = self._lower_expr(stmt.value, region) if stmt.value is not None else None
			if region.kind is RegionKind.WRAPPER:
				return exit_statements(SignalKind.RETURN, value, write_backs=region.write_back_stmts, loc=stmt.loc)
			return [Return(value=value, loc=stmt.loc)]
		if isinstance(stmt, (Break, Continue)):
			if region.loop_depth > 0:
				return [Break(loc=stmt.loc) if isinstance(stmt, Break) else Continue(loc=stmt.loc)]
			if region.kind is RegionKind.WRAPPER:
				kind = SignalKind.BREAK if isinstance(stmt, Break) else SignalKind.CONTINUE
				return exit_statements(kind, write_backs=region.write_back_stmts, loc=stmt.loc)
			raise UnsupportedConstruct(f"'{type(stmt).__name__.lower()}' outside of a loop", stmt.loc)
		raise UnsupportedConstruct(f"unsupported statement '{type(stmt).__name__}'", getattr(stmt, "loc", None))

	def _lower_declaration(self, stmt: Declaration, region: _Region) -> List[Stmt]:
		binding = self.analysis.declared_binding(stmt.node_id)
		if binding is None:
			raise UnsupportedConstruct(f"declaration of '{stmt.name}' was not analyzed", stmt.loc)
		name = self._name_of(binding.binding_id)
		value = self._lower_expr(stmt.value, region) if stmt.value is not None else None
		if binding.is_function_scoped:
			if region.kind is RegionKind.WRAPPER:
				region.function_region().hoisted[binding.binding_id] = None
				if value is None:
					return []
				return [Assignment(target=Name(name, stmt.loc), value=value, loc=stmt.loc)]
			return [Declaration(name=name, kind=DeclKind.VAR, value=value, loc=stmt.loc)]
		if value is None:
			value = Literal(None, stmt.loc)
		return [Declaration(name=name, kind=DeclKind.VAR, value=value, loc=stmt.loc)]

	def _lower_branch(self, block: Block, region: _Region) -> Block:
		spec = self.closures.for_block(block.node_id)
		if spec is not None:
			return Block(statements=self._wrap_block(spec, block, region), loc=block.loc)
		return Block(statements=self._lower_stmts(block.statements, region), loc=block.loc)

	def _wrap_block(self, spec: ClosureSpec, block: Block, region: _Region) -> List[Stmt]:
		inner = _Region(kind=RegionKind.WRAPPER, parent=region)
		body = self._lower_stmts(block.statements, inner)
		if spec.may_exit:
			body += epilogue()
		wrapper = FunctionExpr(params=[], body=Block(statements=body, loc=block.loc), loc=block.loc)
		call = Call(func=wrapper, args=[], loc=block.loc)
		return call_statements(
			call,
			spec.exits,
			region.call_site(),
			self._fresh,
			write_backs=region.write_back_stmts,
			loc=block.loc,
		)

	# Loops

	def _lower_loop(self, loop: Loop, region: _Region) -> List[Stmt]:
		plan = self.loops[loop.node_id]
		spec = plan.wrapper
		if spec is None:
			header = self._lower_header(loop.header, region)
			region.loop_depth += 1
			try:
				body = Block(statements=self._lower_stmts(loop.body.statements, region), loc=loop.body.loc)
			finally:
				region.loop_depth -= 1
			return [Loop(header=header, body=body, loc=loop.loc)]

		drivers = {bid: self._fresh(f"{self.names[bid]}$") for bid in plan.fresh}
		self._overrides.update(drivers)
		try:
			header = self._lower_header(loop.header, region)
		finally:
			for bid in drivers:
				del self._overrides[bid]

		inner = _Region(kind=RegionKind.WRAPPER, parent=region)
		inner.write_backs = [(drivers[bid], self.names[bid]) for bid in plan.write_back]
		body = self._lower_stmts(loop.body.statements, inner)
		if spec.may_exit:
			body += epilogue(write_backs=inner.write_back_stmts)
		else:
			body += inner.write_back_stmts()
		wrapper = FunctionExpr(
			params=[self.names[bid] for bid in plan.fresh],
			body=Block(statements=body, loc=loop.body.loc),
			loc=loop.loc,
		)
		args: List[Expr] = [Name(drivers[bid], loop.loc) for bid in plan.fresh]
		site = region.call_site(inside_loop=True)

		def _dispatch(call: Expr) -> List[Stmt]:
			return call_statements(
				call,
				spec.exits,
				site,
				self._fresh,
				write_backs=region.write_back_stmts,
				loc=loop.loc,
			)

		hoist_name = self._fresh("$loop") if plan.hoist else None
		return build_wrapped_loop(header, wrapper, args, _dispatch, hoist_name=hoist_name, loc=loop.loc)

	def _lower_header(self, header: LoopHeader, region: _Region) -> LoopHeader:
		if isinstance(header, WhileHeader):
			return WhileHeader(condition=self._lower_expr(header.condition, region), loc=header.loc)
		if isinstance(header, ForHeader):
			init = self._lower_single(header.init, header, region)
			condition = self._lower_expr(header.condition, region) if header.condition is not None else None
			update = self._lower_single(header.update, header, region)
			return ForHeader(init=init, condition=condition, update=update, loc=header.loc)
		if isinstance(header, ForOfHeader):
			iterable = self._lower_expr(header.iterable, region)
			if header.kind is None:
				ref = self.analysis.reference_at(header.node_id)
				name = header.name if ref is None or ref.binding_id is None else self._name_of(ref.binding_id)
				return ForOfHeader(name=name, kind=None, iterable=iterable, loc=header.loc)
			binding = self.analysis.declared_binding(header.node_id)
			assert binding is not None
			name = self._name_of(binding.binding_id)
			kind: Optional[DeclKind] = DeclKind.VAR
			if binding.is_function_scoped and region.kind is RegionKind.WRAPPER:
				region.function_region().hoisted[binding.binding_id] = None
				kind = None
			return ForOfHeader(name=name, kind=kind, iterable=iterable, loc=header.loc)
		raise UnsupportedConstruct(f"unsupported loop header '{type(header).__name__}'", getattr(header, "loc", None))

	def _lower_single(self, stmt: Optional[Stmt], header: ForHeader, region: _Region) -> Optional[Stmt]:
		if stmt is None:
			return None
		lowered = self._lower_stmt(stmt, region)
		if not lowered:
			return None
		if len(lowered) != 1:
			raise UnsupportedConstruct("loop header clause does not lower to a single statement", header.loc)
		return lowered[0]

	# Expressions

	def _lower_expr(self, expr: Expr, region: _Region) -> Expr:
		if isinstance(expr, Literal):
			return Literal(expr.value, expr.loc)
		if isinstance(expr, Name):
			return Name(self._ref_name(expr), expr.loc)
		if isinstance(expr, Unary):
			return Unary(op=expr.op, operand=self._lower_expr(expr.operand, region), loc=expr.loc)
		if isinstance(expr, Binary):
			return Binary(
				op=expr.op,
				left=self._lower_expr(expr.left, region),
				right=self._lower_expr(expr.right, region),
				loc=expr.loc,
			)
		if isinstance(expr, Call):
			return Call(
				func=self._lower_expr(expr.func, region),
				args=[self._lower_expr(arg, region) for arg in expr.args],
				loc=expr.loc,
			)
		if isinstance(expr, ArrayLiteral):
			return ArrayLiteral(elements=[self._lower_expr(e, region) for e in expr.elements], loc=expr.loc)
		if isinstance(expr, Index):
			return Index(
				value=self._lower_expr(expr.value, region),
				index=self._lower_expr(expr.index, region),
				loc=expr.loc,
			)
		if isinstance(expr, FunctionExpr):
			inner = _Region(kind=RegionKind.FUNCTION, parent=region)
			body = self._lower_function_body(expr.body, inner)
			return FunctionExpr(params=list(expr.params), body=body, loc=expr.loc)
		if isinstance(expr, SignalExpr):
			value = self._lower_expr(expr.value, region) if expr.value is not None else None
			return SignalExpr(kind=expr.kind, value=value, loc=expr.loc)
		if isinstance(expr, SignalIs):
			return SignalIs(subject=self._lower_expr(expr.subject, region), kind=expr.kind, loc=expr.loc)
		if isinstance(expr, SignalValue):
			return SignalValue(subject=self._lower_expr(expr.subject, region), loc=expr.loc)
		raise UnsupportedConstruct(f"unsupported expression '{type(expr).__name__}'", getattr(expr, "loc", None))


def desugar_function(
	fn: FunctionDef,
	analysis: ScopeAnalysis,
	classification: BindingClassification,
	closures: ClosurePlan,
	loops: Dict[NodeId, LoopPlan],
) -> FunctionDef:
	return Desugarer(analysis, classification, closures, loops).lower_function(fn)


__all__ = ["RegionKind", "Desugarer", "desugar_function"]
