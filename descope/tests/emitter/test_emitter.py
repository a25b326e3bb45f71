# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Printer tests: surface syntax round trips and the rendering of transformed
trees (wrappers, signal checks).
"""

from __future__ import annotations

import textwrap

from descope.emitter import format_expr, format_program, format_stmt, format_string
from descope.nodes import (
	Binary,
	Call,
	FunctionExpr,
	Block,
	Literal,
	Name,
	Return,
	SignalExpr,
	SignalIs,
	SignalKind,
	SignalValue,
	Unary,
)
from descope.tests.helpers import parse, transform


def _dedent(text: str) -> str:
	return textwrap.dedent(text).lstrip("\n")


def test_round_trip_is_stable():
	src = _dedent(
		"""
		function f(a, b) {
		  var out = [];
		  for (let i = 0; i < a; i = i + 1) {
		    if (i == b) {
		      continue;
		    } else if (i > b) {
		      break;
		    } else {
		      push(out, function (x) {
		        return x * i;
		      });
		    }
		  }
		  for (const v of out) {}
		  while (!done) {
		    done = true;
		  }
		  return out;
		}

		print(f(3, 1)[0](2), "a\\"b");
		"""
	)
	assert format_program(parse(src)) == src


def test_precedence_parentheses():
	prog = parse("x = (a + b) * c; y = a - (b - c); z = -(a + b); w = (a || b) && !(c == d);")
	lines = [line for stmt in prog.statements for line in format_stmt(stmt)]
	assert lines == [
		"x = (a + b) * c;",
		"y = a - (b - c);",
		"z = -(a + b);",
		"w = (a || b) && !(c == d);",
	]


def test_left_nested_operators_need_no_parentheses():
	expr = Binary("-", Binary("-", Name("a"), Name("b")), Name("c"))
	assert format_expr(expr) == "a - b - c"


def test_immediately_invoked_function_is_parenthesized():
	call = Call(func=FunctionExpr(params=[], body=Block([Return(Literal(1))])), args=[])
	assert format_expr(call) == "(function () {\n  return 1;\n})()"


def test_literals_and_strings():
	assert format_expr(Literal(None)) == "undefined"
	assert format_expr(Literal(True)) == "true"
	assert format_expr(Literal(2.5)) == "2.5"
	assert format_string('a"b\\c\nd') == '"a\\"b\\\\c\\nd"'


def test_signal_nodes():
	assert format_expr(SignalExpr(SignalKind.NONE)) == "$signal.none"
	assert format_expr(SignalExpr(SignalKind.RETURN, Name("x"))) == "$signal.return(x)"
	assert format_expr(SignalExpr(SignalKind.RETURN)) == "$signal.return()"
	assert format_expr(SignalExpr(SignalKind.BREAK)) == "$signal.break"
	assert format_expr(SignalIs(Name("$sig1"), SignalKind.CONTINUE)) == '$signal.is($sig1, "continue")'
	assert format_expr(SignalValue(Name("$sig1"))) == "$signal.value($sig1)"
	assert format_expr(Unary("!", SignalIs(Name("s"), SignalKind.NONE))) == '!$signal.is(s, "none")'


def test_transformed_loop_layout():
	result = transform(
		"""
		function f() {
			var fs = [];
			for (let i = 0; i < 3; i = i + 1) {
				push(fs, function () { return i; });
			}
			return fs;
		}
		"""
	)
	assert format_program(result.program) == _dedent(
		"""
		function f() {
		  var fs = [];
		  var $loop2 = function (i) {
		    push(fs, function () {
		      return i;
		    });
		  };
		  for (var i$1 = 0; i$1 < 3; i$1 = i$1 + 1) {
		    $loop2(i$1);
		  }
		  return fs;
		}
		"""
	)


def test_transformed_early_exit_layout():
	result = transform(
		"""
		function g(flag) {
			{
				let a = 1;
				var h = function () { return a; };
				if (flag) { return h; }
			}
			return undefined;
		}
		"""
	)
	assert format_program(result.program) == _dedent(
		"""
		function g(flag) {
		  var h;
		  var $sig1 = (function () {
		    var a = 1;
		    h = function () {
		      return a;
		    };
		    if (flag) {
		      return $signal.return(h);
		    }
		    return $signal.none;
		  })();
		  if ($signal.is($sig1, "return")) {
		    return $signal.value($sig1);
		  }
		  return undefined;
		}
		"""
	)
