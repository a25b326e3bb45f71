# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Closure synthesis: which scopes become wrappers and what each wrapper holds.
"""

from __future__ import annotations

from descope.binding_classifier import classify_bindings
from descope.closure_synthesizer import collect_exits, synthesize_closures
from descope.nodes import Block, Loop, SignalKind
from descope.scope_analyzer import analyze_function
from descope.tests.helpers import function_named, nodes_of, parse

GLOBALS = {"print", "push"}


def _plan(src: str, name: str = "f"):
	fn = function_named(parse(src), name)
	analysis = analyze_function(fn, GLOBALS)
	classification = classify_bindings(analysis)
	return fn, analysis, synthesize_closures(fn, analysis, classification)


def _names(analysis, binding_ids) -> list[str]:
	return [analysis.binding(bid).name for bid in binding_ids]


def test_uncaptured_block_is_inlined():
	_fn, _analysis, plan = _plan("function f() { { let a = 1; print(a); } }")
	assert plan.specs() == []
	assert plan.wrapped_scopes() == set()


def test_captured_block_gets_wrapper():
	fn, analysis, plan = _plan(
		"""
		function f() {
			var g;
			{
				let a = 1;
				let b = 2;
				g = function () { return a; };
				print(b);
			}
			return g;
		}
		"""
	)
	block = fn.body.statements[1]
	assert isinstance(block, Block)
	spec = plan.for_block(block.node_id)
	assert spec is not None
	assert _names(analysis, spec.locals) == ["a", "b"]
	assert spec.params == ()
	assert not spec.may_exit
	assert not spec.is_loop_body
	assert plan.wrapped_scopes() == {analysis.block_scopes[block.node_id]}


def test_wrapper_records_exits_and_hoisted_vars():
	fn, analysis, plan = _plan(
		"""
		function f(flag) {
			{
				let a = 1;
				var g = function () { return a; };
				if (flag) { return g; }
			}
			return g;
		}
		"""
	)
	(spec,) = plan.specs()
	assert spec.exits == frozenset({SignalKind.RETURN})
	assert _names(analysis, spec.hoisted_vars) == ["g"]


def test_loop_with_captured_header_gets_loop_wrapper():
	fn, analysis, plan = _plan(
		"""
		function f() {
			var fs = [];
			for (let i = 0; i < 3; i = i + 1) {
				if (i == 1) { continue; }
				push(fs, function () { return i; });
			}
			return fs;
		}
		"""
	)
	(loop,) = nodes_of(fn, Loop)
	spec = plan.for_loop(loop.node_id)
	assert spec is not None
	assert spec.is_loop_body and spec.loop_id == loop.node_id
	assert _names(analysis, spec.params) == ["i"]
	assert spec.locals == ()
	assert spec.exits == frozenset({SignalKind.CONTINUE})
	assert plan.block_wrappers == {}


def test_loop_with_captured_body_binding_only():
	fn, analysis, plan = _plan(
		"""
		function f() {
			var fs = [];
			var n = 0;
			while (n < 3) {
				let m = n * 2;
				push(fs, function () { return m; });
				n = n + 1;
			}
			return fs;
		}
		"""
	)
	(loop,) = nodes_of(fn, Loop)
	spec = plan.for_loop(loop.node_id)
	assert spec is not None
	assert spec.params == ()
	assert _names(analysis, spec.locals) == ["m"]
	# The loop body block is covered by the loop wrapper, not by a block wrapper.
	assert plan.for_block(loop.body.node_id) is None


def test_uncaptured_loop_header_is_not_a_param():
	fn, analysis, plan = _plan(
		"""
		function f() {
			var fs = [];
			for (let i = 0; i < 3; i = i + 1) {
				let sq = i * i;
				push(fs, function () { return sq; });
			}
			return fs;
		}
		"""
	)
	(loop,) = nodes_of(fn, Loop)
	spec = plan.for_loop(loop.node_id)
	assert spec.params == ()
	assert _names(analysis, spec.locals) == ["sq"]


def test_sibling_wrappers_in_source_order():
	fn, _analysis, plan = _plan(
		"""
		function f() {
			var out = [];
			{ let a = 1; push(out, function () { return a; }); }
			{ let b = 2; push(out, function () { return b; }); }
			return out;
		}
		"""
	)
	specs = plan.specs()
	assert [s.node_id for s in specs] == [fn.body.statements[1].node_id, fn.body.statements[2].node_id]


def test_collect_exits_ignores_loop_local_jumps():
	prog = parse(
		"""
		function f() {
			while (true) {
				while (true) { break; }
				if (true) { continue; }
				var g = function () { return 1; };
			}
		}
		"""
	)
	outer = function_named(prog, "f").body.statements[0]
	assert collect_exits(outer.body.statements) == frozenset({SignalKind.CONTINUE})
	assert collect_exits([outer]) == frozenset()
