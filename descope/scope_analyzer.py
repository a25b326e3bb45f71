# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Scope analysis: build the scope tree of one top-level function and resolve
every name reference to the binding it denotes.

Pipeline placement:
  tree (with node ids) → ScopeAnalyzer → ScopeAnalysis → binding classifier

Scopes are introduced by:
- functions (the analyzed function and every nested function expression);
  parameters, every `var` declared anywhere in the body (hoisted) and the
  `let`/`const` declared directly in the body live here,
- blocks that declare at least one `let`/`const`,
- loops whose header declares a `let`/`const` binding (the loop-body scope
  that holds the per-iteration header binding).

Blocks without block-scoped declarations do not get a scope of their own;
their statements are analyzed in the enclosing scope.

Results are side tables keyed by NodeId; the tree itself is not annotated.
Scopes only refer to their parent by ScopeId.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set

from descope.core.errors import DuplicateDeclaration, UnresolvedReference, UnsupportedConstruct
from descope.core.span import Span
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
	Name,
	NodeId,
	Return,
	SignalExpr,
	SignalIs,
	SignalValue,
	Stmt,
	Unary,
	WhileHeader,
	assign_node_ids,
	var_declarations,
)

ScopeId = NodeId
BindingId = int


class ScopeKind(Enum):
	FUNCTION = "function"
	BLOCK = "block"
	LOOP_BODY = "loop_body"


class BindingOrigin(Enum):
	"""Where a binding was introduced."""
	PARAM = "param"
	DECLARATION = "declaration"
	LOOP_HEADER = "loop_header"


@dataclass(frozen=True)
class Binding:
	"""A declared name; owned by exactly one scope."""
	binding_id: BindingId
	name: str
	origin: BindingOrigin
	decl_kind: Optional[DeclKind]  # None for parameters
	scope_id: ScopeId
	span: Span = field(default_factory=Span)

	@property
	def is_function_scoped(self) -> bool:
		return self.origin is BindingOrigin.PARAM or self.decl_kind is DeclKind.VAR


@dataclass
class Scope:
	scope_id: ScopeId
	kind: ScopeKind
	parent: Optional[ScopeId]
	# Declared names in declaration order.
	names: Dict[str, BindingId] = field(default_factory=dict)
	children: List[ScopeId] = field(default_factory=list)

	@property
	def binding_ids(self) -> List[BindingId]:
		return list(self.names.values())


@dataclass(frozen=True)
class Reference:
	"""
	One use of a name.

	`binding_id` is None for references to globals (builtins and top-level
	functions). `scope_id` is the scope in which the reference occurs.
	"""
	node_id: NodeId
	name: str
	binding_id: Optional[BindingId]
	scope_id: ScopeId
	is_write: bool
	span: Span = field(default_factory=Span)


@dataclass(frozen=True)
class LoopScopes:
	"""Scopes attached to one loop statement."""
	loop_id: NodeId
	header_scope: Optional[ScopeId]
	body_scope: Optional[ScopeId]
	enclosing_scope: ScopeId


@dataclass
class ScopeAnalysis:
	"""Scope tree plus name resolution for one top-level function."""

	root: ScopeId
	scopes: Dict[ScopeId, Scope] = field(default_factory=dict)
	bindings: Dict[BindingId, Binding] = field(default_factory=dict)
	references: List[Reference] = field(default_factory=list)
	# Declaration / ForOfHeader node id → binding it declares.
	declarations: Dict[NodeId, BindingId] = field(default_factory=dict)
	# Block node id → scope it introduces (only blocks that introduce one).
	block_scopes: Dict[NodeId, ScopeId] = field(default_factory=dict)
	loops: Dict[NodeId, LoopScopes] = field(default_factory=dict)
	globals_used: Set[str] = field(default_factory=set)
	_by_node: Dict[NodeId, Reference] = field(default_factory=dict, repr=False)

	def scope(self, scope_id: ScopeId) -> Scope:
		return self.scopes[scope_id]

	def binding(self, binding_id: BindingId) -> Binding:
		return self.bindings[binding_id]

	def bindings_of(self, scope_id: ScopeId) -> List[Binding]:
		return [self.bindings[bid] for bid in self.scopes[scope_id].binding_ids]

	def reference_at(self, node_id: NodeId) -> Optional[Reference]:
		return self._by_node.get(node_id)

	def declared_binding(self, node_id: NodeId) -> Optional[Binding]:
		bid = self.declarations.get(node_id)
		return self.bindings[bid] if bid is not None else None

	def scope_chain(self, scope_id: ScopeId) -> Iterator[Scope]:
		"""Yield the scope and its ancestors, innermost first."""
		current: Optional[ScopeId] = scope_id
		while current is not None:
			scope = self.scopes[current]
			yield scope
			current = scope.parent

	def enclosing_function(self, scope_id: ScopeId) -> ScopeId:
		for scope in self.scope_chain(scope_id):
			if scope.kind is ScopeKind.FUNCTION:
				return scope.scope_id
		raise KeyError(scope_id)

	def is_within(self, scope_id: ScopeId, ancestor: ScopeId) -> bool:
		"""True when `scope_id` is `ancestor` or nested inside it."""
		return any(s.scope_id == ancestor for s in self.scope_chain(scope_id))

	def lookup(self, scope_id: ScopeId, name: str) -> Optional[Binding]:
		for scope in self.scope_chain(scope_id):
			bid = scope.names.get(name)
			if bid is not None:
				return self.bindings[bid]
		return None

	def record(self, ref: Reference) -> None:
		self.references.append(ref)
		self._by_node[ref.node_id] = ref


class ScopeAnalyzer:
	"""
	Builds a ScopeAnalysis for one top-level function.

	`globals` names resolve without a binding (builtins, other top-level
	functions). Anything else left unresolved raises UnresolvedReference.
	"""

	def __init__(self, globals: Iterable[str] = ()) -> None:
		self._globals: FrozenSet[str] = frozenset(globals)
		self._result: Optional[ScopeAnalysis] = None
		self._next_binding = 1

	def analyze(self, fn: FunctionDef) -> ScopeAnalysis:
		assign_node_ids(fn)
		self._result = ScopeAnalysis(root=fn.node_id)
		self._next_binding = 1
		self._enter_function(fn.node_id, fn.params, fn.body, None, fn.loc)
		return self._result

	# Scope/binding bookkeeping

	def _new_scope(self, scope_id: ScopeId, kind: ScopeKind, parent: Optional[ScopeId]) -> Scope:
		assert self._result is not None
		scope = Scope(scope_id=scope_id, kind=kind, parent=parent)
		self._result.scopes[scope_id] = scope
		if parent is not None:
			self._result.scopes[parent].children.append(scope_id)
		return scope

	def _declare(
		self,
		scope: Scope,
		name: str,
		origin: BindingOrigin,
		decl_kind: Optional[DeclKind],
		span: Span,
		node_id: Optional[NodeId],
	) -> Binding:
		assert self._result is not None
		existing = scope.names.get(name)
		if existing is not None:
			prev = self._result.bindings[existing]
			redeclares_var = origin is not BindingOrigin.PARAM and decl_kind is DeclKind.VAR
			if prev.is_function_scoped and redeclares_var:
				if node_id is not None:
					self._result.declarations[node_id] = existing
				return prev
			raise DuplicateDeclaration(name, span, prev.span)
		binding = Binding(
			binding_id=self._next_binding,
			name=name,
			origin=origin,
			decl_kind=decl_kind,
			scope_id=scope.scope_id,
			span=span,
		)
		self._next_binding += 1
		self._result.bindings[binding.binding_id] = binding
		scope.names[name] = binding.binding_id
		if node_id is not None:
			self._result.declarations[node_id] = binding.binding_id
		return binding

	def _check_var_path(self, scope: Scope, name: str, span: Span) -> None:
		"""A hoisted `var` must not cross a block scope declaring the same name."""
		assert self._result is not None
		for s in self._result.scope_chain(scope.scope_id):
			if s.kind is ScopeKind.FUNCTION:
				return
			bid = s.names.get(name)
			if bid is not None:
				raise DuplicateDeclaration(name, span, self._result.bindings[bid].span)

	def _resolve(self, scope: Scope, name: str, node_id: NodeId, span: Span, *, is_write: bool) -> Reference:
		assert self._result is not None
		binding = self._result.lookup(scope.scope_id, name)
		if binding is None:
			if name not in self._globals:
				raise UnresolvedReference(name, span)
			self._result.globals_used.add(name)
		ref = Reference(
			node_id=node_id,
			name=name,
			binding_id=binding.binding_id if binding is not None else None,
			scope_id=scope.scope_id,
			is_write=is_write,
			span=span,
		)
		self._result.record(ref)
		return ref

	# Functions

	def _enter_function(
		self,
		node_id: NodeId,
		params: List[str],
		body: Block,
		parent: Optional[ScopeId],
		span: Span,
	) -> Scope:
		scope = self._new_scope(node_id, ScopeKind.FUNCTION, parent)
		for param in params:
			self._declare(scope, param, BindingOrigin.PARAM, None, span, None)
		for decl in var_declarations(body.statements):
			self._declare(scope, decl.name, BindingOrigin.DECLARATION, DeclKind.VAR, decl.loc, decl.node_id)
		for stmt in body.statements:
			if isinstance(stmt, Declaration) and stmt.kind.is_block_scoped:
				self._declare(scope, stmt.name, BindingOrigin.DECLARATION, stmt.kind, stmt.loc, stmt.node_id)
		for stmt in body.statements:
			self._walk_stmt(stmt, scope, 0)
		return scope

	# Statements

	def _walk_block(self, block: Block, scope: Scope, loop_depth: int) -> Optional[ScopeId]:
		"""Walk a nested block; returns the scope it introduced, if any."""
		assert self._result is not None
		decls = [s for s in block.statements if isinstance(s, Declaration) and s.kind.is_block_scoped]
		inner = scope
		if decls:
			inner = self._new_scope(block.node_id, ScopeKind.BLOCK, scope.scope_id)
			self._result.block_scopes[block.node_id] = inner.scope_id
			for decl in decls:
				self._declare(inner, decl.name, BindingOrigin.DECLARATION, decl.kind, decl.loc, decl.node_id)
		for stmt in block.statements:
			self._walk_stmt(stmt, inner, loop_depth)
		return inner.scope_id if inner is not scope else None

	def _walk_stmt(self, stmt: Stmt, scope: Scope, loop_depth: int) -> None:
		if isinstance(stmt, Declaration):
			if stmt.kind is DeclKind.VAR:
				self._check_var_path(scope, stmt.name, stmt.loc)
			elif stmt.kind is DeclKind.CONST and stmt.value is None:
				raise UnsupportedConstruct(f"missing initializer in const declaration of '{stmt.name}'", stmt.loc)
			if stmt.value is not None:
				self._walk_expr(stmt.value, scope)
			return
		if isinstance(stmt, Assignment):
			if isinstance(stmt.target, Name):
				self._resolve(scope, stmt.target.ident, stmt.target.node_id, stmt.target.loc, is_write=True)
			elif isinstance(stmt.target, Index):
				self._walk_expr(stmt.target, scope)
			else:
				raise UnsupportedConstruct(
					f"unsupported assignment target '{type(stmt.target).__name__}'", stmt.loc
				)
			self._walk_expr(stmt.value, scope)
			return
		if isinstance(stmt, ExprStmt):
			self._walk_expr(stmt.expr, scope)
			return
		if isinstance(stmt, Block):
			self._walk_block(stmt, scope, loop_depth)
			return
		if isinstance(stmt, If):
			self._walk_expr(stmt.condition, scope)
			self._walk_block(stmt.then_block, scope, loop_depth)
			if stmt.else_block is not None:
				self._walk_block(stmt.else_block, scope, loop_depth)
			return
		if isinstance(stmt, Loop):
			self._walk_loop(stmt, scope, loop_depth)
			return
		if isinstance(stmt, Return):
			if stmt.value is not None:
				self._walk_expr(stmt.value, scope)
			return
		if isinstance(stmt, (Break, Continue)):
			if loop_depth == 0:
				keyword = "break" if isinstance(stmt, Break) else "continue"
				raise UnsupportedConstruct(f"'{keyword}' outside of a loop", stmt.loc)
			return
		raise UnsupportedConstruct(f"unsupported statement '{type(stmt).__name__}'", getattr(stmt, "loc", None))

	def _walk_loop(self, loop: Loop, scope: Scope, loop_depth: int) -> None:
		assert self._result is not None
		header = loop.header
		loop_scope = scope
		header_scope: Optional[ScopeId] = None
		if isinstance(header, WhileHeader):
			self._walk_expr(header.condition, scope)
		elif isinstance(header, ForHeader):
			init = header.init
			if isinstance(init, Declaration) and init.kind.is_block_scoped:
				loop_scope = self._new_scope(loop.node_id, ScopeKind.LOOP_BODY, scope.scope_id)
				header_scope = loop_scope.scope_id
				self._declare(loop_scope, init.name, BindingOrigin.LOOP_HEADER, init.kind, init.loc, init.node_id)
			if init is not None:
				self._walk_stmt(init, loop_scope, loop_depth)
			if header.condition is not None:
				self._walk_expr(header.condition, loop_scope)
			if header.update is not None:
				self._walk_stmt(header.update, loop_scope, loop_depth)
		elif isinstance(header, ForOfHeader):
			self._walk_expr(header.iterable, scope)
			if header.kind is not None and header.kind.is_block_scoped:
				loop_scope = self._new_scope(loop.node_id, ScopeKind.LOOP_BODY, scope.scope_id)
				header_scope = loop_scope.scope_id
				self._declare(loop_scope, header.name, BindingOrigin.LOOP_HEADER, header.kind, header.loc, header.node_id)
			else:
				if header.kind is DeclKind.VAR:
					self._check_var_path(scope, header.name, header.loc)
				self._resolve(scope, header.name, header.node_id, header.loc, is_write=True)
		else:
			raise UnsupportedConstruct(f"unsupported loop header '{type(header).__name__}'", loop.loc)
		body_scope = self._walk_block(loop.body, loop_scope, loop_depth + 1)
		self._result.loops[loop.node_id] = LoopScopes(
			loop_id=loop.node_id,
			header_scope=header_scope,
			body_scope=body_scope,
			enclosing_scope=scope.scope_id,
		)

	# Expressions

	def _walk_expr(self, expr: Expr, scope: Scope) -> None:
		if isinstance(expr, Literal):
			return
		if isinstance(expr, Name):
			self._resolve(scope, expr.ident, expr.node_id, expr.loc, is_write=False)
			return
		if isinstance(expr, Unary):
			self._walk_expr(expr.operand, scope)
			return
		if isinstance(expr, Binary):
			self._walk_expr(expr.left, scope)
			self._walk_expr(expr.right, scope)
			return
		if isinstance(expr, Call):
			self._walk_expr(expr.func, scope)
			for arg in expr.args:
				self._walk_expr(arg, scope)
			return
		if isinstance(expr, ArrayLiteral):
			for elem in expr.elements:
				self._walk_expr(elem, scope)
			return
		if isinstance(expr, Index):
			self._walk_expr(expr.value, scope)
			self._walk_expr(expr.index, scope)
			return
		if isinstance(expr, FunctionExpr):
			self._enter_function(expr.node_id, expr.params, expr.body, scope.scope_id, expr.loc)
			return
		if isinstance(expr, SignalExpr):
			if expr.value is not None:
				self._walk_expr(expr.value, scope)
			return
		if isinstance(expr, (SignalIs, SignalValue)):
			self._walk_expr(expr.subject, scope)
			return
		raise UnsupportedConstruct(f"unsupported expression '{type(expr).__name__}'", getattr(expr, "loc", None))


def analyze_function(fn: FunctionDef, globals: Iterable[str] = ()) -> ScopeAnalysis:
	"""Assign node ids to `fn` and build its ScopeAnalysis."""
	return ScopeAnalyzer(globals).analyze(fn)


__all__ = [
	"ScopeId",
	"BindingId",
	"ScopeKind",
	"BindingOrigin",
	"Binding",
	"Scope",
	"Reference",
	"LoopScopes",
	"ScopeAnalysis",
	"ScopeAnalyzer",
	"analyze_function",
]
