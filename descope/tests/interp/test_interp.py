# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Reference interpreter tests (block scoping semantics of the input language).
"""

from __future__ import annotations

import io

import pytest

from descope.control_flow import NO_SIGNAL, ControlSignal
from descope.interp import Interpreter, run_program
from descope.nodes import Block, FunctionDef, Name, Return, SignalExpr, SignalIs, SignalKind, SignalValue
from descope.runtime import render, truthy
from descope.tests.helpers import parse, run_source


def test_arithmetic_and_strings():
	out = run_source(
		"""
		print(1 + 2 * 3, 7 / 2, 6 / 3, 7 % 3, -7 % 3);
		print("a" + 1, "x" == "x", 1 == "1", 1 != 2);
		print(1 / 0, 0 / 0);
		"""
	)
	assert out == ["7 3.5 2 1 -1", "a1 true false true", "Infinity NaN"]


def test_logical_operators_short_circuit():
	out = run_source(
		"""
		function loud(v) { print("called"); return v; }
		print(false && loud(1));
		print(true || loud(2));
		print(0 || "fallback");
		"""
	)
	assert out == ["false", "true", "fallback"]


def test_arrays_and_builtins():
	out = run_source(
		"""
		var xs = [1, 2];
		push(xs, 3);
		xs[4] = 5;
		print(xs, len(xs), xs[9], range(3), range(1, 3), str([true]));
		"""
	)
	assert out == ["[1,2,3,undefined,5] 5 undefined [0,1,2] [1,2] [true]"]


def test_var_hoisting():
	out = run_source(
		"""
		function f() { print(v); { var v = 1; } return v; }
		print(f());
		"""
	)
	assert out == ["undefined", "1"]


def test_let_is_block_scoped():
	out = run_source(
		"""
		let x = 1;
		{ let x = 2; print(x); }
		print(x);
		"""
	)
	assert out == ["2", "1"]


def test_temporal_dead_zone():
	with pytest.raises(RuntimeError, match="before initialization"):
		run_source("{ print(x); let x = 1; }")


def test_const_assignment_fails_at_runtime():
	with pytest.raises(RuntimeError, match="constant"):
		run_source("const c = 1; c = 2;")


def test_for_let_gets_fresh_binding_per_iteration():
	out = run_source(
		"""
		var fs = [];
		for (let i = 0; i < 3; i = i + 1) { push(fs, function () { return i; }); }
		for (var f of fs) { print(f()); }
		"""
	)
	assert out == ["0", "1", "2"]


def test_for_of_sees_appended_elements():
	out = run_source(
		"""
		var xs = [1];
		for (const x of xs) { if (x < 3) { push(xs, x + 1); } print(x); }
		"""
	)
	assert out == ["1", "2", "3"]


def test_break_and_continue():
	out = run_source(
		"""
		var i = 0;
		while (true) {
			i = i + 1;
			if (i == 2) { continue; }
			if (i > 3) { break; }
			print(i);
		}
		"""
	)
	assert out == ["1", "3"]


def test_call_by_name_and_output_stream():
	prog = parse("function sq(n) { print(n); return n * n; }")
	stream = io.StringIO()
	interp = Interpreter(prog, stdout=stream)
	assert interp.call("sq", 4) == 16
	assert interp.output == ["4"]
	assert stream.getvalue() == "4\n"


def test_signal_nodes_evaluate_to_control_signals():
	prog = parse("")
	interp = run_program(prog)
	fn = FunctionDef(name="sig", params=["v"], body=Block([Return(SignalExpr(SignalKind.RETURN, Name("v")))]))
	sig = interp.call_function(fn, None)
	assert isinstance(sig, ControlSignal)
	assert sig.kind is SignalKind.RETURN and sig.value is None
	none_fn = FunctionDef(name="none", params=[], body=Block([Return(SignalExpr(SignalKind.NONE))]))
	assert interp.call_function(none_fn) is NO_SIGNAL
	check = FunctionDef(
		name="check",
		params=["s"],
		body=Block([Return(SignalIs(Name("s"), SignalKind.RETURN))]),
	)
	assert interp.call_function(check, sig) is True
	assert interp.call_function(check, NO_SIGNAL) is False
	payload = FunctionDef(name="payload", params=["s"], body=Block([Return(SignalValue(Name("s")))]))
	assert interp.call_function(payload, ControlSignal(SignalKind.RETURN, 5)) == 5


def test_render_and_truthy():
	assert render(None) == "undefined"
	assert render(3.0) == "3"
	assert render([1, [2, "a"]]) == "[1,[2,a]]"
	assert not truthy(0)
	assert not truthy("")
	assert truthy([])
	assert truthy("0")


def test_unknown_function_is_runtime_error():
	with pytest.raises(RuntimeError):
		run_source("var x = 1; x();")
