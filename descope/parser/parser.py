# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
lark-based frontend: source text → descope tree (`descope.nodes`).

The grammar lives next to this file (`grammar.lark`). The builder functions
below walk lark's parse tree and construct node dataclasses with spans.
Structural problems the grammar cannot express (e.g. assigning to a call
result) are reported as `ParseError`.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree

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
	Program,
	Return,
	Stmt,
	Unary,
	WhileHeader,
)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="program",
	propagate_positions=True,
	maybe_placeholders=False,
)

_DECL_KINDS = {
	"VAR": DeclKind.VAR,
	"LET": DeclKind.LET,
	"CONST": DeclKind.CONST,
}

_CHAIN_TAILS = {
	"logic_or": "logic_or_tail",
	"logic_and": "logic_and_tail",
	"equality": "equality_tail",
	"comparison": "comparison_tail",
	"sum": "sum_tail",
	"term": "term_tail",
}


class ParseError(ValueError):
	"""
	User-facing error for well-formed parse trees that do not describe a valid
	program (invalid assignment targets, malformed string escapes).
	"""

	def __init__(self, message: str, *, loc: Span | None) -> None:
		super().__init__(message)
		self.loc = loc or Span()


def parse_program(source: str, *, file: str | None = None) -> Program:
	"""Parse `source` into a Program. Raises lark's `UnexpectedInput` or `ParseError`."""
	tree = _PARSER.parse(source)
	return _Builder(file).build_program(tree)


_SIMPLE_ESCAPES = {
	"n": "\n",
	"t": "\t",
	"r": "\r",
	"b": "\b",
	"f": "\f",
	"v": "\v",
	"0": "\0",
}

_ESCAPE_RE = re.compile(r"\\(u\{([0-9A-Fa-f]+)\}|u([0-9A-Fa-f]{4})|x([0-9A-Fa-f]{2})|[ux]|.)", re.DOTALL)


def _decode_string_token(tok: Token, loc: Span) -> str:
	"""
	Decode STRING tokens (either quote style) with JavaScript escapes:
	`\\n`-style single characters, `\\xHH`, `\\uHHHH` and `\\u{H...}` code
	points. Any other escaped character stands for itself. Non-ASCII source
	text is kept as written.
	"""
	content = tok.value[1:-1]

	def _replace(match: re.Match) -> str:
		braced, four, two = match.group(2), match.group(3), match.group(4)
		digits = braced or four or two
		if digits is not None:
			code = int(digits, 16)
			if code > 0x10FFFF:
				raise ParseError(f"code point out of range in escape '{match.group(0)}'", loc=loc)
			return chr(code)
		escaped = match.group(1)
		if escaped in ("u", "x"):
			raise ParseError(f"malformed '\\{escaped}' escape in string literal", loc=loc)
		return _SIMPLE_ESCAPES.get(escaped, escaped)

	decoded = _ESCAPE_RE.sub(_replace, content)
	# Surrogate pairs written as two `\uHHHH` escapes denote one code point.
	return decoded.encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def _decode_number_token(tok: Token) -> int | float:
	text = tok.value
	if "." in text:
		return float(text)
	return int(text)


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)


def _subtrees(tree: Tree) -> List[Tree]:
	return [child for child in tree.children if isinstance(child, Tree)]


class _Builder:
	"""Turns a lark parse tree into descope nodes, stamping spans with `file`."""

	def __init__(self, file: str | None) -> None:
		self._file = file

	def _loc(self, tree: Tree) -> Span:
		meta = tree.meta
		return Span(
			file=self._file,
			line=getattr(meta, "line", None),
			column=getattr(meta, "column", None),
			end_line=getattr(meta, "end_line", None),
			end_column=getattr(meta, "end_column", None),
		)

	def _loc_from_token(self, token: Token) -> Span:
		return Span(
			file=self._file,
			line=token.line,
			column=token.column,
			end_line=token.end_line,
			end_column=token.end_column,
		)

	def build_program(self, tree: Tree) -> Program:
		functions: List[FunctionDef] = []
		statements: List[Stmt] = []
		for child in _subtrees(tree):
			if _name(child) == "function_def":
				functions.append(self._build_function(child))
			else:
				statements.append(self._build_stmt(child))
		return Program(functions=functions, statements=statements)

	def _build_function(self, tree: Tree) -> FunctionDef:
		name_token = next(child for child in tree.children if isinstance(child, Token))
		params: List[str] = []
		body: Optional[Block] = None
		for child in _subtrees(tree):
			if _name(child) == "params":
				params = self._build_params(child)
			elif _name(child) == "block":
				body = self._build_block(child)
		assert body is not None
		return FunctionDef(name=name_token.value, params=params, body=body, loc=self._loc(tree))

	def _build_params(self, tree: Tree) -> List[str]:
		return [tok.value for tok in tree.children if isinstance(tok, Token)]

	def _build_block(self, tree: Tree) -> Block:
		statements = [self._build_stmt(child) for child in _subtrees(tree)]
		return Block(statements=statements, loc=self._loc(tree))

	def _build_stmt(self, tree: Tree) -> Stmt:
		kind = _name(tree)
		if kind == "decl_stmt":
			return self._build_decl_stmt(tree)
		if kind == "assign_stmt":
			return self._build_assign_stmt(tree)
		if kind == "expr_stmt":
			return ExprStmt(expr=self._build_expr(tree.children[0]), loc=self._loc(tree))
		if kind == "return_stmt":
			value_nodes = _subtrees(tree)
			value = self._build_expr(value_nodes[0]) if value_nodes else None
			return Return(value=value, loc=self._loc(tree))
		if kind == "break_stmt":
			return Break(loc=self._loc(tree))
		if kind == "continue_stmt":
			return Continue(loc=self._loc(tree))
		if kind == "if_stmt":
			return self._build_if_stmt(tree)
		if kind == "while_stmt":
			return self._build_while_stmt(tree)
		if kind == "for_stmt":
			return self._build_for_stmt(tree)
		if kind == "for_of_stmt":
			return self._build_for_of_stmt(tree)
		if kind == "block":
			return self._build_block(tree)
		raise ParseError(f"unexpected statement '{kind}'", loc=self._loc(tree))

	def _build_decl_kind(self, tree: Tree) -> DeclKind:
		token = tree.children[0]
		return _DECL_KINDS[token.type]

	def _build_decl_stmt(self, tree: Tree) -> Declaration:
		children = list(tree.children)
		kind = self._build_decl_kind(children[0])
		name_token = children[1]
		value = self._build_expr(children[2]) if len(children) > 2 else None
		return Declaration(name=name_token.value, kind=kind, value=value, loc=self._loc(tree))

	def _build_assign_stmt(self, tree: Tree) -> Assignment:
		target = self._build_expr(tree.children[0])
		value = self._build_expr(tree.children[1])
		if not isinstance(target, (Name, Index)):
			raise ParseError("invalid assignment target", loc=target.loc)
		return Assignment(target=target, value=value, loc=self._loc(tree))

	def _build_if_stmt(self, tree: Tree) -> If:
		children = list(tree.children)
		condition = self._build_expr(children[0])
		then_block = self._build_block(children[1])
		else_block = None
		if len(children) > 2:
			clause = children[2]
			inner = _subtrees(clause)[0]
			if _name(inner) == "block":
				else_block = self._build_block(inner)
			else:
				nested = self._build_if_stmt(inner)
				else_block = Block(statements=[nested], loc=nested.loc)
		return If(condition=condition, then_block=then_block, else_block=else_block, loc=self._loc(tree))

	def _build_while_stmt(self, tree: Tree) -> Loop:
		children = list(tree.children)
		condition = self._build_expr(children[0])
		header = WhileHeader(condition=condition, loc=condition.loc)
		return Loop(header=header, body=self._build_block(children[1]), loc=self._loc(tree))

	def _build_for_stmt(self, tree: Tree) -> Loop:
		init: Optional[Stmt] = None
		condition: Optional[Expr] = None
		update: Optional[Stmt] = None
		body: Optional[Block] = None
		for child in _subtrees(tree):
			name = _name(child)
			if name == "for_init":
				init = self._build_stmt(child.children[0])
			elif name == "for_cond":
				condition = self._build_expr(child.children[0])
			elif name == "for_update":
				update = self._build_stmt(child.children[0])
			elif name == "block":
				body = self._build_block(child)
		assert body is not None
		header = ForHeader(init=init, condition=condition, update=update, loc=self._loc(tree))
		return Loop(header=header, body=body, loc=self._loc(tree))

	def _build_for_of_stmt(self, tree: Tree) -> Loop:
		kind: Optional[DeclKind] = None
		name_token: Optional[Token] = None
		rest: List[Tree | Token] = []
		for child in tree.children:
			if isinstance(child, Tree) and _name(child) == "decl_kw":
				kind = self._build_decl_kind(child)
			elif name_token is None and isinstance(child, Token) and child.type == "NAME":
				name_token = child
			else:
				rest.append(child)
		assert name_token is not None and len(rest) == 2
		iterable = self._build_expr(rest[0])
		header = ForOfHeader(name=name_token.value, kind=kind, iterable=iterable, loc=self._loc_from_token(name_token))
		return Loop(header=header, body=self._build_block(rest[1]), loc=self._loc(tree))

	def _build_expr(self, node: Tree | Token) -> Expr:
		if isinstance(node, Token):
			raise ParseError(f"unexpected token {node.value!r}", loc=self._loc_from_token(node))
		name = _name(node)
		if name in _CHAIN_TAILS:
			return self._fold_chain(node, _CHAIN_TAILS[name])
		if name == "unary_op":
			op_token = node.children[0]
			operand = self._build_expr(node.children[1])
			return Unary(op=op_token.value, operand=operand, loc=self._loc(node))
		if name == "postfix":
			return self._build_postfix(node)
		if name == "number":
			return Literal(value=_decode_number_token(node.children[0]), loc=self._loc(node))
		if name == "string":
			return Literal(value=_decode_string_token(node.children[0], self._loc(node)), loc=self._loc(node))
		if name == "true_lit":
			return Literal(value=True, loc=self._loc(node))
		if name == "false_lit":
			return Literal(value=False, loc=self._loc(node))
		if name == "undefined_lit":
			return Literal(value=None, loc=self._loc(node))
		if name == "var":
			return Name(ident=node.children[0].value, loc=self._loc(node))
		if name == "array":
			return ArrayLiteral(elements=self._build_args(node), loc=self._loc(node))
		if name == "function_expr":
			params: List[str] = []
			body: Optional[Block] = None
			for child in _subtrees(node):
				if _name(child) == "params":
					params = self._build_params(child)
				elif _name(child) == "block":
					body = self._build_block(child)
			assert body is not None
			return FunctionExpr(params=params, body=body, loc=self._loc(node))
		raise ParseError(f"unexpected expression '{name}'", loc=self._loc(node))

	def _build_args(self, tree: Tree) -> List[Expr]:
		args_node = next((c for c in _subtrees(tree) if _name(c) == "args"), None)
		if args_node is None:
			return []
		return [self._build_expr(child) for child in args_node.children]

	def _build_postfix(self, tree: Tree) -> Expr:
		children = list(tree.children)
		result = self._build_expr(children[0])
		for suffix in children[1:]:
			kind = _name(suffix)
			if kind == "call_suffix":
				result = Call(func=result, args=self._build_args(suffix), loc=self._loc(suffix))
			elif kind == "index_suffix":
				index = self._build_expr(suffix.children[0])
				result = Index(value=result, index=index, loc=self._loc(suffix))
		return result

	def _fold_chain(self, tree: Tree, tail_name: str) -> Expr:
		child_nodes = _subtrees(tree)
		result = self._build_expr(child_nodes[0])
		for child in child_nodes[1:]:
			if _name(child) != tail_name:
				continue
			op_token = child.children[0]
			right = self._build_expr(child.children[1])
			result = Binary(op=op_token.value, left=result, right=right, loc=self._loc_from_token(op_token))
		return result


__all__ = ["ParseError", "parse_program"]
