# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Runtime support for the reference interpreter: value rendering, truthiness
and the builtin functions visible to every program as globals.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Mapping, Sequence

# `undefined` is represented by None.
UNDEFINED = None


class RuntimeContext:
	"""Output sink shared by the builtins of one interpreter run."""

	def __init__(self, stdout=None) -> None:
		self.stdout = stdout
		self.lines: List[str] = []

	def emit(self, text: str) -> None:
		self.lines.append(text)
		if self.stdout is not None:
			self.stdout.write(text + "\n")
			self.stdout.flush()


BuiltinImpl = Callable[[RuntimeContext, Sequence[object]], object]


@dataclass
class BuiltinFunction:
	name: str
	impl: BuiltinImpl
	min_args: int = 0
	max_args: int | None = None

	def check_arity(self, count: int) -> None:
		if count < self.min_args or (self.max_args is not None and count > self.max_args):
			raise RuntimeError(f"{self.name}() got {count} argument(s)")


@dataclass
class Closure:
	"""A function value: parameters, body and the environment it closes over."""
	params: List[str]
	body: object
	env: object = field(repr=False)
	name: str | None = None


def render(value: object) -> str:
	if value is None:
		return "undefined"
	if value is True:
		return "true"
	if value is False:
		return "false"
	if isinstance(value, float):
		if math.isnan(value):
			return "NaN"
		if math.isinf(value):
			return "Infinity" if value > 0 else "-Infinity"
		if value.is_integer():
			return str(int(value))
		return repr(value)
	if isinstance(value, list):
		return "[" + ",".join(render(item) for item in value) + "]"
	if isinstance(value, (Closure, BuiltinFunction)):
		return "[function]"
	return str(value)


def truthy(value: object) -> bool:
	if value is None or value is False:
		return False
	if isinstance(value, float) and math.isnan(value):
		return False
	if isinstance(value, (int, float)) and not isinstance(value, bool):
		return value != 0
	if isinstance(value, str):
		return value != ""
	return True


def _builtin_print(ctx: RuntimeContext, args: Sequence[object]) -> object:
	ctx.emit(" ".join(render(arg) for arg in args))
	return UNDEFINED


def _builtin_push(ctx: RuntimeContext, args: Sequence[object]) -> object:
	target, value = args
	if not isinstance(target, list):
		raise TypeError(f"push() expects an array, got {render(target)}")
	target.append(value)
	return len(target)


def _builtin_len(ctx: RuntimeContext, args: Sequence[object]) -> object:
	value = args[0]
	if not isinstance(value, (list, str)):
		raise TypeError(f"len() expects an array or string, got {render(value)}")
	return len(value)


def _builtin_range(ctx: RuntimeContext, args: Sequence[object]) -> object:
	if len(args) == 1:
		return list(range(int(args[0])))  # type: ignore[arg-type]
	return list(range(int(args[0]), int(args[1])))  # type: ignore[arg-type]


def _builtin_str(ctx: RuntimeContext, args: Sequence[object]) -> object:
	return render(args[0])


BUILTINS: Mapping[str, BuiltinFunction] = {
	"print": BuiltinFunction("print", _builtin_print),
	"push": BuiltinFunction("push", _builtin_push, 2, 2),
	"len": BuiltinFunction("len", _builtin_len, 1, 1),
	"range": BuiltinFunction("range", _builtin_range, 1, 2),
	"str": BuiltinFunction("str", _builtin_str, 1, 1),
}

BUILTIN_NAMES: FrozenSet[str] = frozenset(BUILTINS)


__all__ = [
	"UNDEFINED",
	"RuntimeContext",
	"BuiltinFunction",
	"Closure",
	"render",
	"truthy",
	"BUILTINS",
	"BUILTIN_NAMES",
]
