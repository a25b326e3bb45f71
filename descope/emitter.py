# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Source printer for descope trees.

Input programs print back in the surface syntax accepted by the parser.
Transformed programs additionally contain signal nodes, printed as calls on a
`$signal` runtime object (`$signal.return(v)`, `$signal.is(s, "break")`, ...),
and synthesized names containing `$`; those two are for reading only.
"""

from __future__ import annotations

from typing import List

from descope.nodes import (
	ArrayLiteral,
	Assignment,
	Binary,
	Block,
	Break,
	Call,
	Continue,
	Declaration,
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
	SignalExpr,
	SignalIs,
	SignalKind,
	SignalValue,
	Stmt,
	Unary,
	WhileHeader,
)

INDENT = "  "

_PRECEDENCE = {
	"||": 1,
	"&&": 2,
	"==": 3,
	"!=": 3,
	"<": 4,
	"<=": 4,
	">": 4,
	">=": 4,
	"+": 5,
	"-": 5,
	"*": 6,
	"/": 6,
	"%": 6,
}
_UNARY_PRECEDENCE = 7
_POSTFIX_PRECEDENCE = 8

_STRING_ESCAPES = {
	"\\": "\\\\",
	'"': '\\"',
	"\n": "\\n",
	"\t": "\\t",
	"\r": "\\r",
}


def format_string(value: str) -> str:
	return '"' + "".join(_STRING_ESCAPES.get(ch, ch) for ch in value) + '"'


def format_literal(value: object) -> str:
	if value is None:
		return "undefined"
	if value is True:
		return "true"
	if value is False:
		return "false"
	if isinstance(value, str):
		return format_string(value)
	return repr(value)


def _precedence(expr: Expr) -> int:
	if isinstance(expr, Binary):
		return _PRECEDENCE.get(expr.op, 0)
	if isinstance(expr, Unary):
		return _UNARY_PRECEDENCE
	if isinstance(expr, FunctionExpr):
		return 0
	return _POSTFIX_PRECEDENCE + 1


def format_expr(expr: Expr, level: int = 0) -> str:
	if isinstance(expr, Literal):
		return format_literal(expr.value)
	if isinstance(expr, Name):
		return expr.ident
	if isinstance(expr, Unary):
		operand = format_expr(expr.operand, level)
		if _precedence(expr.operand) <= _UNARY_PRECEDENCE:
			operand = f"({operand})"
		return f"{expr.op}{operand}"
	if isinstance(expr, Binary):
		prec = _precedence(expr)
		left = format_expr(expr.left, level)
		right = format_expr(expr.right, level)
		if _precedence(expr.left) < prec:
			left = f"({left})"
		if _precedence(expr.right) <= prec:
			right = f"({right})"
		return f"{left} {expr.op} {right}"
	if isinstance(expr, Call):
		callee = format_expr(expr.func, level)
		if _precedence(expr.func) < _POSTFIX_PRECEDENCE:
			callee = f"({callee})"
		args = ", ".join(format_expr(arg, level) for arg in expr.args)
		return f"{callee}({args})"
	if isinstance(expr, Index):
		base = format_expr(expr.value, level)
		if _precedence(expr.value) < _POSTFIX_PRECEDENCE:
			base = f"({base})"
		return f"{base}[{format_expr(expr.index, level)}]"
	if isinstance(expr, ArrayLiteral):
		return "[" + ", ".join(format_expr(e, level) for e in expr.elements) + "]"
	if isinstance(expr, FunctionExpr):
		params = ", ".join(expr.params)
		if not expr.body.statements:
			return f"function ({params}) {{}}"
		lines = [f"function ({params}) {{"]
		lines.extend(format_block_lines(expr.body, level + 1))
		lines.append(INDENT * level + "}")
		return "\n".join(lines)
	if isinstance(expr, SignalExpr):
		if expr.kind is SignalKind.RETURN:
			value = format_expr(expr.value, level) if expr.value is not None else ""
			return f"$signal.return({value})"
		return f"$signal.{expr.kind.value}"
	if isinstance(expr, SignalIs):
		return f'$signal.is({format_expr(expr.subject, level)}, "{expr.kind.value}")'
	if isinstance(expr, SignalValue):
		return f"$signal.value({format_expr(expr.subject, level)})"
	return f"<invalid expr {type(expr).__name__}>"


def _format_simple(stmt: Stmt, level: int) -> str:
	"""Statements that may also appear in a `for` header (no trailing `;`)."""
	if isinstance(stmt, Declaration):
		if stmt.value is None:
			return f"{stmt.kind.value} {stmt.name}"
		return f"{stmt.kind.value} {stmt.name} = {format_expr(stmt.value, level)}"
	if isinstance(stmt, Assignment):
		return f"{format_expr(stmt.target, level)} = {format_expr(stmt.value, level)}"
	if isinstance(stmt, ExprStmt):
		text = format_expr(stmt.expr, level)
		if isinstance(stmt.expr, FunctionExpr):
			text = f"({text})"
		return text
	return f"<invalid stmt {type(stmt).__name__}>"


def format_block_lines(block: Block, level: int) -> List[str]:
	lines: List[str] = []
	for stmt in block.statements:
		lines.extend(format_stmt(stmt, level))
	return lines


def _braced(head: str, block: Block, level: int) -> List[str]:
	pad = INDENT * level
	if not block.statements:
		return [f"{pad}{head}{{}}"]
	return [f"{pad}{head}{{"] + format_block_lines(block, level + 1) + [f"{pad}}}"]


def format_stmt(stmt: Stmt, level: int = 0) -> List[str]:
	pad = INDENT * level
	if isinstance(stmt, (Declaration, Assignment, ExprStmt)):
		return [f"{pad}{_format_simple(stmt, level)};"]
	if isinstance(stmt, Return):
		if stmt.value is None:
			return [f"{pad}return;"]
		return [f"{pad}return {format_expr(stmt.value, level)};"]
	if isinstance(stmt, Break):
		return [f"{pad}break;"]
	if isinstance(stmt, Continue):
		return [f"{pad}continue;"]
	if isinstance(stmt, Block):
		return _braced("", stmt, level)
	if isinstance(stmt, If):
		lines = _braced(f"if ({format_expr(stmt.condition, level)}) ", stmt.then_block, level)
		else_block = stmt.else_block
		while else_block is not None:
			nested = else_block.statements[0] if len(else_block.statements) == 1 else None
			if isinstance(nested, If):
				head = f"else if ({format_expr(nested.condition, level)}) "
				branch = _braced(head, nested.then_block, level)
				lines[-1] = lines[-1] + " " + branch[0].lstrip()
				lines.extend(branch[1:])
				else_block = nested.else_block
				continue
			branch = _braced("else ", else_block, level)
			lines[-1] = lines[-1] + " " + branch[0].lstrip()
			lines.extend(branch[1:])
			break
		return lines
	if isinstance(stmt, Loop):
		header = stmt.header
		if isinstance(header, WhileHeader):
			head = f"while ({format_expr(header.condition, level)}) "
		elif isinstance(header, ForHeader):
			init = _format_simple(header.init, level) if header.init is not None else ""
			cond = format_expr(header.condition, level) if header.condition is not None else ""
			update = _format_simple(header.update, level) if header.update is not None else ""
			head = f"for ({init}; {cond}; {update}) "
		elif isinstance(header, ForOfHeader):
			kind = f"{header.kind.value} " if header.kind is not None else ""
			head = f"for ({kind}{header.name} of {format_expr(header.iterable, level)}) "
		else:
			return [f"{pad}<invalid loop header {type(header).__name__}>"]
		return _braced(head, stmt.body, level)
	return [f"{pad}<invalid stmt {type(stmt).__name__}>"]


def format_function(fn: FunctionDef) -> str:
	params = ", ".join(fn.params)
	return "\n".join(_braced(f"function {fn.name}({params}) ", fn.body, 0))


def format_program(program: Program) -> str:
	chunks: List[str] = [format_function(fn) for fn in program.functions]
	if program.statements:
		chunks.append("\n".join(line for stmt in program.statements for line in format_stmt(stmt, 0)))
	return "\n\n".join(chunks) + "\n"


__all__ = [
	"format_literal",
	"format_string",
	"format_expr",
	"format_stmt",
	"format_block_lines",
	"format_function",
	"format_program",
]
