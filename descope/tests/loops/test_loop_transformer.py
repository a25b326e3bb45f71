# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Loop planning: fresh vs shared header bindings, write-back and hoisting.
"""

from __future__ import annotations

from descope.binding_classifier import classify_bindings
from descope.closure_synthesizer import synthesize_closures
from descope.loop_transformer import Freshness, plan_loops
from descope.nodes import Loop
from descope.scope_analyzer import analyze_function
from descope.tests.helpers import function_named, nodes_of, parse

GLOBALS = {"print", "push"}


def _plans(src: str, name: str = "f", **kwargs):
	fn = function_named(parse(src), name)
	analysis = analyze_function(fn, GLOBALS)
	classification = classify_bindings(analysis)
	closures = synthesize_closures(fn, analysis, classification)
	plans = plan_loops(fn, analysis, classification, closures, **kwargs)
	loops = nodes_of(fn, Loop)
	return analysis, [plans[loop.node_id] for loop in loops]


def _names(analysis, binding_ids) -> list[str]:
	return [analysis.binding(bid).name for bid in binding_ids]


CAPTURING_LOOP = """
function f() {
	var fs = [];
	for (let i = 0; i < 3; i = i + 1) { push(fs, function () { return i; }); }
	return fs;
}
"""


def test_captured_header_binding_is_fresh_and_hoisted():
	analysis, (plan,) = _plans(CAPTURING_LOOP)
	assert _names(analysis, plan.fresh) == ["i"]
	assert plan.shared == ()
	assert plan.freshness(plan.fresh[0]) is Freshness.FRESH
	assert plan.write_back == ()
	assert plan.wrapper is not None
	assert plan.hoist


def test_no_hoist_option():
	_analysis, (plan,) = _plans(CAPTURING_LOOP, hoist_loop_closures=False)
	assert plan.wrapper is not None
	assert not plan.hoist


def test_loop_without_captures_has_no_wrapper():
	analysis, (plan,) = _plans("function f() { for (let i = 0; i < 3; i = i + 1) { print(i); } }")
	assert plan.wrapper is None
	assert plan.fresh == ()
	assert _names(analysis, plan.shared) == ["i"]
	assert plan.freshness(plan.header_bindings[0]) is Freshness.SHARED
	assert not plan.hoist


def test_var_loop_has_no_header_bindings():
	_analysis, (plan,) = _plans(
		"function f() { var fs = []; for (var x of [1, 2]) { push(fs, function () { return x; }); } return fs; }"
	)
	assert plan.header_bindings == ()
	assert plan.wrapper is None


def test_body_write_requires_write_back():
	analysis, (plan,) = _plans(
		"""
		function f() {
			var fs = [];
			for (let i = 0; i < 6; i = i + 1) {
				push(fs, function () { return i; });
				i = i + 1;
			}
			return fs;
		}
		"""
	)
	assert _names(analysis, plan.write_back) == ["i"]


def test_for_of_never_writes_back():
	analysis, (plan,) = _plans(
		"""
		function f(xs) {
			var fs = [];
			for (let x of xs) {
				x = x * 2;
				push(fs, function () { return x; });
			}
			return fs;
		}
		"""
	)
	assert _names(analysis, plan.fresh) == ["x"]
	assert plan.write_back == ()


def test_wrapper_capturing_outer_iteration_binding_is_not_hoisted():
	analysis, (outer, inner) = _plans(
		"""
		function f() {
			var fs = [];
			for (let i = 0; i < 2; i = i + 1) {
				for (let j = 0; j < 2; j = j + 1) {
					push(fs, function () { return i + j; });
				}
			}
			return fs;
		}
		"""
	)
	assert _names(analysis, outer.fresh) == ["i"]
	assert _names(analysis, inner.fresh) == ["j"]
	assert outer.hoist
	assert not inner.hoist


def test_while_loop_body_wrapper_is_hoisted():
	_analysis, (plan,) = _plans(
		"""
		function f() {
			var fs = [];
			var n = 0;
			while (n < 3) {
				let m = n;
				push(fs, function () { return m; });
				n = n + 1;
			}
			return fs;
		}
		"""
	)
	assert plan.wrapper is not None
	assert plan.header_bindings == ()
	assert plan.hoist
