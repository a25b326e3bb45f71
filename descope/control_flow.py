# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Control-flow rewriting for synthesized wrappers.

A wrapper is a function, so `return`, `break` and `continue` inside it can no
longer reach their original targets directly. Inside the wrapper they become
`return <signal>`; at the call site the returned signal is inspected and
re-issued:

- `break`/`continue` whose target loop encloses the call site in the same
  function become a plain `break`/`continue` there,
- `return` at a call site in a real function returns the signal's payload,
- anything else (call site inside another wrapper) is returned unchanged to
  the next call site out.

The no-signal marker is a private singleton (`NO_SIGNAL`), so a function
returning `undefined` is still distinguishable from "fell off the end".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

from descope.core.errors import UnsupportedConstruct
from descope.core.span import Span
from descope.nodes import (
	Block,
	Break,
	Continue,
	Declaration,
	DeclKind,
	Expr,
	ExprStmt,
	If,
	Name,
	Return,
	SignalExpr,
	SignalIs,
	SignalKind,
	SignalValue,
	Stmt,
	Unary,
)

# Order in which a call site tests for signals.
_DISPATCH_ORDER = (SignalKind.RETURN, SignalKind.BREAK, SignalKind.CONTINUE)


@dataclass(frozen=True)
class ControlSignal:
	"""Runtime value returned by a wrapper that exits early."""
	kind: SignalKind
	value: object = None

	def __repr__(self) -> str:
		if self.kind is SignalKind.RETURN:
			return f"<signal return {self.value!r}>"
		return f"<signal {self.kind.value}>"


class _NoSignal:
	"""Marker returned by a wrapper that completed normally."""

	_instance: Optional["_NoSignal"] = None

	def __new__(cls) -> "_NoSignal":
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __repr__(self) -> str:
		return "<no signal>"


NO_SIGNAL = _NoSignal()


def make_signal(kind: SignalKind, value: object = None) -> ControlSignal | _NoSignal:
	if kind is SignalKind.NONE:
		return NO_SIGNAL
	return ControlSignal(kind, value)


def signal_matches(subject: object, kind: SignalKind) -> bool:
	if kind is SignalKind.NONE:
		return subject is NO_SIGNAL
	return isinstance(subject, ControlSignal) and subject.kind is kind


class ExitAction(Enum):
	"""What a call site does with a signal of one kind."""
	LOCAL = "local"  # re-issue break/continue in the loop around the call site
	RETURN_VALUE = "return_value"  # return the payload from the real function
	PROPAGATE = "propagate"  # return the signal itself to the next call site out


@dataclass(frozen=True)
class CallSite:
	"""Where a wrapper call sits, relative to its own region (function or wrapper)."""
	in_wrapper: bool
	inside_loop: bool


def plan_dispatch(exits: Iterable[SignalKind], site: CallSite) -> List[Tuple[SignalKind, ExitAction]]:
	"""Decide the handling of every exit kind a wrapper may produce."""
	exit_set = frozenset(exits)
	plan: List[Tuple[SignalKind, ExitAction]] = []
	for kind in _DISPATCH_ORDER:
		if kind not in exit_set:
			continue
		if kind is SignalKind.RETURN:
			plan.append((kind, ExitAction.PROPAGATE if site.in_wrapper else ExitAction.RETURN_VALUE))
		elif site.inside_loop:
			plan.append((kind, ExitAction.LOCAL))
		elif site.in_wrapper:
			plan.append((kind, ExitAction.PROPAGATE))
		else:
			raise UnsupportedConstruct(f"'{kind.value}' signal has no enclosing loop")
	return plan


WriteBacks = Callable[[], List[Stmt]]


def _no_write_backs() -> List[Stmt]:
	return []


def exit_statements(
	kind: SignalKind,
	value: Optional[Expr] = None,
	*,
	write_backs: WriteBacks = _no_write_backs,
	loc: Span | None = None,
) -> List[Stmt]:
	"""Replacement for an exit statement inside a wrapper body."""
	span = loc or Span()
	return write_backs() + [Return(value=SignalExpr(kind=kind, value=value, loc=span), loc=span)]


def epilogue(*, write_backs: WriteBacks = _no_write_backs) -> List[Stmt]:
	"""Trailing `return <no signal>` for wrappers that may exit early."""
	return write_backs() + [Return(value=SignalExpr(kind=SignalKind.NONE))]


def dispatch_statements(
	signal_name: str,
	exits: FrozenSet[SignalKind],
	site: CallSite,
	*,
	write_backs: WriteBacks = _no_write_backs,
	loc: Span | None = None,
) -> List[Stmt]:
	"""Statements following `var <signal_name> = wrapper();` at a call site."""
	span = loc or Span()
	plan = plan_dispatch(exits, site)
	stmts: List[Stmt] = []
	if plan and all(action is ExitAction.PROPAGATE for _, action in plan):
		is_none = SignalIs(subject=Name(signal_name, span), kind=SignalKind.NONE, loc=span)
		propagate = write_backs() + [Return(value=Name(signal_name, span), loc=span)]
		return [If(condition=Unary(op="!", operand=is_none, loc=span), then_block=Block(propagate, span), loc=span)]
	for kind, action in plan:
		test = SignalIs(subject=Name(signal_name, span), kind=kind, loc=span)
		if action is ExitAction.LOCAL:
			body: List[Stmt] = [Break(loc=span) if kind is SignalKind.BREAK else Continue(loc=span)]
		elif action is ExitAction.RETURN_VALUE:
			body = [Return(value=SignalValue(subject=Name(signal_name, span), loc=span), loc=span)]
		else:
			body = write_backs() + [Return(value=Name(signal_name, span), loc=span)]
		stmts.append(If(condition=test, then_block=Block(body, span), loc=span))
	return stmts


def call_statements(
	call: Expr,
	exits: FrozenSet[SignalKind],
	site: CallSite,
	fresh_name: Callable[[str], str],
	*,
	write_backs: WriteBacks = _no_write_backs,
	loc: Span | None = None,
) -> List[Stmt]:
	"""Invoke a wrapper and re-issue whatever signal it returns."""
	span = loc or Span()
	if not exits:
		return [ExprStmt(expr=call, loc=span)]
	signal_name = fresh_name("$sig")
	decl = Declaration(name=signal_name, kind=DeclKind.VAR, value=call, loc=span)
	return [decl] + dispatch_statements(signal_name, exits, site, write_backs=write_backs, loc=span)


__all__ = [
	"SignalKind",
	"ControlSignal",
	"NO_SIGNAL",
	"make_signal",
	"signal_matches",
	"ExitAction",
	"CallSite",
	"plan_dispatch",
	"exit_statements",
	"epilogue",
	"dispatch_statements",
	"call_statements",
]
