# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Reference interpreter for descope programs.

Runs both input programs (block scoping, temporal dead zone, per-iteration
loop bindings) and transformed programs (`var` plus wrappers and signal
nodes), so the two can be compared by their printed output.

Semantics follow JavaScript where the languages overlap:
- `var` is hoisted to `undefined` at function entry,
- `let`/`const` live in the nearest block and are unreadable until their
  declaration runs,
- a C-style `for (let ...)` copies the header binding into a fresh
  environment for every iteration; `for (let x of ...)` creates one per
  element.
"""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Sequence, Set

from descope.control_flow import make_signal, signal_matches, ControlSignal
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
	SignalExpr,
	SignalIs,
	SignalValue,
	Stmt,
	Unary,
	WhileHeader,
	MAIN_FUNCTION,
	var_declarations,
)
from descope.runtime import BUILTINS, BuiltinFunction, Closure, RuntimeContext, render, truthy


class ReturnSignal(Exception):
	def __init__(self, value: object) -> None:
		self.value = value


class BreakSignal(Exception):
	pass


class ContinueSignal(Exception):
	pass


class _Uninitialized:
	def __repr__(self) -> str:
		return "<uninitialized>"


_UNINITIALIZED = _Uninitialized()


class Environment:
	def __init__(self, parent: Environment | None = None) -> None:
		self.parent = parent
		self.values: Dict[str, object] = {}
		self.consts: Set[str] = set()

	def define(self, name: str, value: object, *, const: bool = False) -> None:
		if name in self.values:
			raise RuntimeError(f"'{name}' already defined in this scope")
		self.values[name] = value
		if const:
			self.consts.add(name)

	def declare_lexical(self, name: str, *, const: bool = False) -> None:
		"""Create a `let`/`const` binding that is unreadable until initialized."""
		self.define(name, _UNINITIALIZED, const=const)

	def _owner(self, name: str) -> Environment:
		env: Environment | None = self
		while env is not None:
			if name in env.values:
				return env
			env = env.parent
		raise RuntimeError(f"Unknown identifier '{name}'")

	def initialize(self, name: str, value: object) -> None:
		self._owner(name).values[name] = value

	def set(self, name: str, value: object) -> None:
		owner = self._owner(name)
		if owner.values[name] is _UNINITIALIZED:
			raise RuntimeError(f"cannot access '{name}' before initialization")
		if name in owner.consts:
			raise RuntimeError(f"assignment to constant variable '{name}'")
		owner.values[name] = value

	def get(self, name: str) -> object:
		value = self._owner(name).values[name]
		if value is _UNINITIALIZED:
			raise RuntimeError(f"cannot access '{name}' before initialization")
		return value

	def copy(self) -> Environment:
		"""Sibling environment with the same bindings (per-iteration copy)."""
		clone = Environment(parent=self.parent)
		clone.values = dict(self.values)
		clone.consts = set(self.consts)
		return clone


def _lexical_declarations(statements: List[Stmt]) -> List[Declaration]:
	return [s for s in statements if isinstance(s, Declaration) and s.kind.is_block_scoped]


def _is_number(value: object) -> bool:
	return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equal(left: object, right: object) -> bool:
	if _is_number(left) and _is_number(right):
		return left == right
	if isinstance(left, (list, Closure)) or isinstance(right, (list, Closure)):
		return left is right
	return type(left) is type(right) and left == right


def _as_index(value: object) -> Optional[int]:
	if isinstance(value, bool):
		return None
	if isinstance(value, int):
		return value
	if isinstance(value, float) and value.is_integer():
		return int(value)
	return None


class Interpreter:
	def __init__(
		self,
		program: Program,
		builtins: Mapping[str, BuiltinFunction] | None = None,
		stdout=None,
	) -> None:
		self.program = program
		self.runtime_ctx = RuntimeContext(stdout)
		self.builtins = builtins or BUILTINS
		self.global_env = Environment()
		self._register_builtins()
		self._register_functions()

	@property
	def output(self) -> List[str]:
		return self.runtime_ctx.lines

	def _register_builtins(self) -> None:
		for name, builtin in self.builtins.items():
			self.global_env.define(name, builtin)

	def _register_functions(self) -> None:
		for fn in self.program.functions:
			self.global_env.define(fn.name, Closure(fn.params, fn.body, self.global_env, fn.name))

	def run_main(self) -> object:
		main = self.program.main_function()
		return self._call_closure(Closure(main.params, main.body, self.global_env, MAIN_FUNCTION), [])

	def call(self, name: str, *args: object) -> object:
		func = self.global_env.get(name)
		return self._invoke(func, list(args))

	def call_function(self, fn: FunctionDef, *args: object) -> object:
		"""Call a function definition that is not registered as a global."""
		return self._call_closure(Closure(fn.params, fn.body, self.global_env, fn.name), list(args))

	def _invoke(self, func: object, args: Sequence[object]) -> object:
		if isinstance(func, BuiltinFunction):
			func.check_arity(len(args))
			return func.impl(self.runtime_ctx, args)
		if isinstance(func, Closure):
			return self._call_closure(func, args)
		raise RuntimeError(f"{render(func)} is not a function")

	def _call_closure(self, closure: Closure, args: Sequence[object]) -> object:
		body: Block = closure.body  # type: ignore[assignment]
		env = Environment(parent=closure.env)  # type: ignore[arg-type]
		for idx, param in enumerate(closure.params):
			if param in env.values:
				env.values[param] = args[idx] if idx < len(args) else None
				continue
			env.define(param, args[idx] if idx < len(args) else None)
		for decl in var_declarations(body.statements):
			if decl.name not in env.values:
				env.define(decl.name, None)
		for decl in _lexical_declarations(body.statements):
			env.declare_lexical(decl.name, const=decl.kind is DeclKind.CONST)
		try:
			self._execute_statements(body.statements, env)
		except ReturnSignal as signal:
			return signal.value
		return None

	# Statements

	def _execute_statements(self, statements: List[Stmt], env: Environment) -> None:
		for stmt in statements:
			self._exec_stmt(stmt, env)

	def _execute_block(self, block: Block, env: Environment) -> None:
		lexical = _lexical_declarations(block.statements)
		if lexical:
			env = Environment(parent=env)
			for decl in lexical:
				env.declare_lexical(decl.name, const=decl.kind is DeclKind.CONST)
		self._execute_statements(block.statements, env)

	def _exec_stmt(self, stmt: Stmt, env: Environment) -> None:
		if isinstance(stmt, Declaration):
			if stmt.kind is DeclKind.VAR:
				if stmt.value is not None:
					env.set(stmt.name, self._eval_expr(stmt.value, env))
				return
			value = self._eval_expr(stmt.value, env) if stmt.value is not None else None
			env.initialize(stmt.name, value)
			return
		if isinstance(stmt, Assignment):
			self._assign(stmt.target, self._eval_expr(stmt.value, env), env)
			return
		if isinstance(stmt, ExprStmt):
			self._eval_expr(stmt.expr, env)
			return
		if isinstance(stmt, Block):
			self._execute_block(stmt, env)
			return
		if isinstance(stmt, If):
			if truthy(self._eval_expr(stmt.condition, env)):
				self._execute_block(stmt.then_block, env)
			elif stmt.else_block is not None:
				self._execute_block(stmt.else_block, env)
			return
		if isinstance(stmt, Loop):
			self._exec_loop(stmt, env)
			return
		if isinstance(stmt, Return):
			value = self._eval_expr(stmt.value, env) if stmt.value is not None else None
			raise ReturnSignal(value)
		if isinstance(stmt, Break):
			raise BreakSignal()
		if isinstance(stmt, Continue):
			raise ContinueSignal()
		raise RuntimeError(f"Unsupported statement {type(stmt).__name__}")

	def _exec_loop(self, loop: Loop, env: Environment) -> None:
		header = loop.header
		if isinstance(header, WhileHeader):
			while truthy(self._eval_expr(header.condition, env)):
				try:
					self._execute_block(loop.body, env)
				except BreakSignal:
					break
				except ContinueSignal:
					continue
			return
		if isinstance(header, ForHeader):
			self._exec_for(loop, header, env)
			return
		if isinstance(header, ForOfHeader):
			self._exec_for_of(loop, header, env)
			return
		raise RuntimeError(f"Unsupported loop header {type(header).__name__}")

	def _exec_for(self, loop: Loop, header: ForHeader, env: Environment) -> None:
		init = header.init
		iter_env = env
		per_iteration = isinstance(init, Declaration) and init.kind.is_block_scoped
		if per_iteration:
			assert isinstance(init, Declaration)
			loop_env = Environment(parent=env)
			loop_env.declare_lexical(init.name, const=init.kind is DeclKind.CONST)
			self._exec_stmt(init, loop_env)
			iter_env = loop_env.copy()
		elif init is not None:
			self._exec_stmt(init, env)
		while True:
			if header.condition is not None and not truthy(self._eval_expr(header.condition, iter_env)):
				break
			try:
				self._execute_block(loop.body, iter_env)
			except BreakSignal:
				break
			except ContinueSignal:
				pass
			if per_iteration:
				iter_env = iter_env.copy()
			if header.update is not None:
				self._exec_stmt(header.update, iter_env)

	def _exec_for_of(self, loop: Loop, header: ForOfHeader, env: Environment) -> None:
		sequence = self._eval_expr(header.iterable, env)
		if not isinstance(sequence, (list, str)):
			raise RuntimeError(f"{render(sequence)} is not iterable")
		idx = 0
		while idx < len(sequence):
			item = sequence[idx]
			idx += 1
			body_env = env
			if header.kind is not None and header.kind.is_block_scoped:
				body_env = Environment(parent=env)
				body_env.define(header.name, item, const=header.kind is DeclKind.CONST)
			else:
				env.set(header.name, item)
			try:
				self._execute_block(loop.body, body_env)
			except BreakSignal:
				break
			except ContinueSignal:
				continue

	# Expressions

	def _eval_expr(self, expr: Expr, env: Environment) -> object:
		if isinstance(expr, Literal):
			return expr.value
		if isinstance(expr, Name):
			return env.get(expr.ident)
		if isinstance(expr, Unary):
			operand = self._eval_expr(expr.operand, env)
			if expr.op == "!":
				return not truthy(operand)
			if expr.op == "-":
				if not _is_number(operand):
					raise RuntimeError(f"cannot negate {render(operand)}")
				return -operand  # type: ignore[operator]
			raise RuntimeError(f"Unsupported unary operator {expr.op}")
		if isinstance(expr, Binary):
			return self._eval_binary(expr, env)
		if isinstance(expr, Call):
			func = self._eval_expr(expr.func, env)
			args = [self._eval_expr(arg, env) for arg in expr.args]
			return self._invoke(func, args)
		if isinstance(expr, ArrayLiteral):
			return [self._eval_expr(elem, env) for elem in expr.elements]
		if isinstance(expr, Index):
			base = self._eval_expr(expr.value, env)
			index = _as_index(self._eval_expr(expr.index, env))
			if not isinstance(base, (list, str)):
				raise RuntimeError(f"{render(base)} is not indexable")
			if index is None or index < 0 or index >= len(base):
				return None
			return base[index]
		if isinstance(expr, FunctionExpr):
			return Closure(expr.params, expr.body, env)
		if isinstance(expr, SignalExpr):
			value = self._eval_expr(expr.value, env) if expr.value is not None else None
			return make_signal(expr.kind, value)
		if isinstance(expr, SignalIs):
			return signal_matches(self._eval_expr(expr.subject, env), expr.kind)
		if isinstance(expr, SignalValue):
			subject = self._eval_expr(expr.subject, env)
			if not isinstance(subject, ControlSignal):
				raise RuntimeError(f"{render(subject)} is not a control signal")
			return subject.value
		raise RuntimeError(f"Unsupported expression {type(expr).__name__}")

	def _eval_binary(self, expr: Binary, env: Environment) -> object:
		if expr.op == "&&":
			left = self._eval_expr(expr.left, env)
			return self._eval_expr(expr.right, env) if truthy(left) else left
		if expr.op == "||":
			left = self._eval_expr(expr.left, env)
			return left if truthy(left) else self._eval_expr(expr.right, env)
		left = self._eval_expr(expr.left, env)
		right = self._eval_expr(expr.right, env)
		op = expr.op
		if op == "==":
			return _strict_equal(left, right)
		if op == "!=":
			return not _strict_equal(left, right)
		if op == "+" and (isinstance(left, str) or isinstance(right, str)):
			return render(left) + render(right)
		if op in ("<", "<=", ">", ">=") and isinstance(left, str) and isinstance(right, str):
			return _compare(op, left, right)
		if not (_is_number(left) and _is_number(right)):
			raise RuntimeError(f"unsupported operands for {op}: {render(left)}, {render(right)}")
		if op == "+":
			return left + right  # type: ignore[operator]
		if op == "-":
			return left - right  # type: ignore[operator]
		if op == "*":
			return left * right  # type: ignore[operator]
		if op == "/":
			if right == 0:
				if left == 0:
					return math.nan
				return math.copysign(math.inf, left)  # type: ignore[arg-type]
			result = left / right  # type: ignore[operator]
			return int(result) if result.is_integer() else result
		if op == "%":
			if right == 0:
				return math.nan
			result = math.fmod(left, right)  # type: ignore[arg-type]
			if isinstance(left, int) and isinstance(right, int):
				return int(result)
			return result
		if op in ("<", "<=", ">", ">="):
			return _compare(op, left, right)
		raise RuntimeError(f"Unsupported operator {op}")

	def _assign(self, target: Expr, value: object, env: Environment) -> None:
		if isinstance(target, Name):
			env.set(target.ident, value)
			return
		if isinstance(target, Index):
			base = self._eval_expr(target.value, env)
			index = _as_index(self._eval_expr(target.index, env))
			if not isinstance(base, list) or index is None or index < 0:
				raise RuntimeError("invalid index assignment")
			while len(base) <= index:
				base.append(None)
			base[index] = value
			return
		raise RuntimeError("Unsupported assignment target")


def _compare(op: str, left, right) -> bool:
	if op == "<":
		return left < right
	if op == "<=":
		return left <= right
	if op == ">":
		return left > right
	return left >= right


def run_program(program: Program, stdout=None) -> Interpreter:
	"""Run the program's top-level statements; returns the interpreter (see `.output`)."""
	interpreter = Interpreter(program, BUILTINS, stdout=stdout)
	interpreter.run_main()
	return interpreter


__all__ = ["Environment", "Interpreter", "run_program", "ReturnSignal", "BreakSignal", "ContinueSignal"]
