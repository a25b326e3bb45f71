# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Tree vocabulary shared by the frontend, the transform stages and the emitter.

Pipeline placement:
  source text → (parser) → tree (this file) → scope/closure stages → tree → (emitter)

The same node shapes describe both the input program (which may use `let`,
`const` and per-iteration loop bindings) and the transformed program (which
only uses `var`, nested function expressions and the signal nodes at the
bottom of this file).

Guiding rules:
- Nodes are purely syntactic; resolution results live in side tables keyed by
  `node_id` (see `assign_node_ids`), never on the nodes themselves.
- `Literal(None)` is the `undefined` value.
- Nodes must not be shared between two positions of one tree; side tables
  would conflate them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Iterator, List, Optional

from descope.core.span import Span

# Stable identifiers for tree nodes (used by analysis side tables).
NodeId = int


class Node:
	"""Base class for all tree nodes."""
	node_id: NodeId = 0


class Expr(Node):
	"""Base class for all expressions."""
	pass


class Stmt(Node):
	"""Base class for all statements."""
	pass


class DeclKind(Enum):
	"""Declaration form used in the source (`var`, `let`, `const`)."""
	VAR = "var"
	LET = "let"
	CONST = "const"

	@property
	def is_block_scoped(self) -> bool:
		return self is not DeclKind.VAR


class SignalKind(Enum):
	"""Early-exit signal carried out of a synthesized closure."""
	NONE = "none"
	RETURN = "return"
	BREAK = "break"
	CONTINUE = "continue"


# Expressions

@dataclass
class Literal(Expr):
	"""Number, string, boolean or `undefined` (None)."""
	value: object
	loc: Span = field(default_factory=Span)


@dataclass
class Name(Expr):
	"""Reference to a binding (resolved by the scope analyzer)."""
	ident: str
	loc: Span = field(default_factory=Span)


@dataclass
class Unary(Expr):
	op: str
	operand: Expr
	loc: Span = field(default_factory=Span)


@dataclass
class Binary(Expr):
	op: str
	left: Expr
	right: Expr
	loc: Span = field(default_factory=Span)


@dataclass
class Call(Expr):
	func: Expr
	args: List[Expr] = field(default_factory=list)
	loc: Span = field(default_factory=Span)


@dataclass
class ArrayLiteral(Expr):
	elements: List[Expr] = field(default_factory=list)
	loc: Span = field(default_factory=Span)


@dataclass
class Index(Expr):
	value: Expr
	index: Expr
	loc: Span = field(default_factory=Span)


@dataclass
class FunctionExpr(Expr):
	"""
	Anonymous function (closure) expression.

	The transform also uses it for synthesized closure wrappers.
	"""
	params: List[str]
	body: "Block"
	loc: Span = field(default_factory=Span)


# Statements

@dataclass
class Declaration(Stmt):
	"""`var|let|const name [= value]`."""
	name: str
	kind: DeclKind
	value: Optional[Expr] = None
	loc: Span = field(default_factory=Span)


@dataclass
class Assignment(Stmt):
	"""`target = value` where target is a Name or an Index."""
	target: Expr
	value: Expr
	loc: Span = field(default_factory=Span)


@dataclass
class ExprStmt(Stmt):
	expr: Expr
	loc: Span = field(default_factory=Span)


@dataclass
class Block(Stmt):
	statements: List[Stmt] = field(default_factory=list)
	loc: Span = field(default_factory=Span)


@dataclass
class If(Stmt):
	condition: Expr
	then_block: Block
	else_block: Optional[Block] = None
	loc: Span = field(default_factory=Span)


class LoopHeader(Node):
	"""Base class for the three loop header shapes."""
	pass


@dataclass
class WhileHeader(LoopHeader):
	condition: Expr
	loc: Span = field(default_factory=Span)


@dataclass
class ForHeader(LoopHeader):
	"""C-style `for (init; condition; update)`; every part is optional."""
	init: Optional[Stmt] = None
	condition: Optional[Expr] = None
	update: Optional[Stmt] = None
	loc: Span = field(default_factory=Span)


@dataclass
class ForOfHeader(LoopHeader):
	"""`for ([kind] name of iterable)`; kind None assigns an existing binding."""
	name: str
	kind: Optional[DeclKind]
	iterable: Expr
	loc: Span = field(default_factory=Span)


@dataclass
class Loop(Stmt):
	header: LoopHeader
	body: Block
	loc: Span = field(default_factory=Span)


@dataclass
class Return(Stmt):
	value: Optional[Expr] = None
	loc: Span = field(default_factory=Span)


@dataclass
class Break(Stmt):
	loc: Span = field(default_factory=Span)


@dataclass
class Continue(Stmt):
	loc: Span = field(default_factory=Span)


# Top level

@dataclass
class FunctionDef(Node):
	"""Named top-level function; the unit the pipeline transforms."""
	name: str
	params: List[str]
	body: Block
	loc: Span = field(default_factory=Span)


# Name of the implicit function holding top-level statements. Not a valid
# identifier, so user code can never call or shadow it.
MAIN_FUNCTION = "<main>"


@dataclass
class Program:
	functions: List[FunctionDef] = field(default_factory=list)
	statements: List[Stmt] = field(default_factory=list)

	def main_function(self) -> FunctionDef:
		return FunctionDef(name=MAIN_FUNCTION, params=[], body=Block(statements=list(self.statements)))


# Signal nodes (only produced by the transform)

@dataclass
class SignalExpr(Expr):
	"""Construct a control signal; `NONE` is the private no-signal marker."""
	kind: SignalKind
	value: Optional[Expr] = None
	loc: Span = field(default_factory=Span)


@dataclass
class SignalIs(Expr):
	"""Test whether `subject` is a signal of the given kind."""
	subject: Expr
	kind: SignalKind
	loc: Span = field(default_factory=Span)


@dataclass
class SignalValue(Expr):
	"""Payload of a `RETURN` signal."""
	subject: Expr
	loc: Span = field(default_factory=Span)


def iter_children(node: Node) -> Iterator[Node]:
	"""Yield the direct child nodes of `node` in field order."""
	if not is_dataclass(node):
		return
	for f in fields(node):
		val = getattr(node, f.name)
		if isinstance(val, Node):
			yield val
		elif isinstance(val, list):
			for item in val:
				if isinstance(item, Node):
					yield item


def var_declarations(statements: List[Stmt]) -> Iterator[Declaration | ForOfHeader]:
	"""
	Yield every `var` declaration in `statements` (including `var` loop
	headers), descending into blocks and loops but not into nested functions.
	"""
	for stmt in statements:
		if isinstance(stmt, Declaration):
			if stmt.kind is DeclKind.VAR:
				yield stmt
		elif isinstance(stmt, Block):
			yield from var_declarations(stmt.statements)
		elif isinstance(stmt, If):
			yield from var_declarations(stmt.then_block.statements)
			if stmt.else_block is not None:
				yield from var_declarations(stmt.else_block.statements)
		elif isinstance(stmt, Loop):
			header = stmt.header
			if isinstance(header, ForHeader) and header.init is not None:
				yield from var_declarations([header.init])
			elif isinstance(header, ForOfHeader) and header.kind is DeclKind.VAR:
				yield header
			yield from var_declarations(stmt.body.statements)


def assign_node_ids(root: Node, *, start: int = 1) -> int:
	"""
	Assign NodeIds to all nodes reachable from `root` in preorder.

	Returns the next available NodeId after traversal.
	"""
	next_id = start
	stack: list[Node] = [root]
	seen: set[int] = set()
	while stack:
		node = stack.pop()
		if id(node) in seen:
			continue
		seen.add(id(node))
		node.node_id = next_id
		next_id += 1
		stack.extend(reversed(list(iter_children(node))))
	return next_id


__all__ = [
	"NodeId",
	"Node",
	"Expr",
	"Stmt",
	"DeclKind",
	"SignalKind",
	"Literal",
	"Name",
	"Unary",
	"Binary",
	"Call",
	"ArrayLiteral",
	"Index",
	"FunctionExpr",
	"Declaration",
	"Assignment",
	"ExprStmt",
	"Block",
	"If",
	"LoopHeader",
	"WhileHeader",
	"ForHeader",
	"ForOfHeader",
	"Loop",
	"Return",
	"Break",
	"Continue",
	"FunctionDef",
	"MAIN_FUNCTION",
	"Program",
	"SignalExpr",
	"SignalIs",
	"SignalValue",
	"iter_children",
	"var_declarations",
	"assign_node_ids",
]
