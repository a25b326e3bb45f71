# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Binding classification: kinds, capture sets and immutability checks.
"""

from __future__ import annotations

import pytest

from descope.binding_classifier import BindingKind, classify_bindings
from descope.core.errors import ImmutableRebindingViolation
from descope.nodes import FunctionExpr
from descope.scope_analyzer import analyze_function
from descope.tests.helpers import function_named, nodes_of, parse

GLOBALS = {"print", "push"}


def _classify(src: str, name: str = "f"):
	fn = function_named(parse(src), name)
	analysis = analyze_function(fn, GLOBALS)
	return fn, analysis, classify_bindings(analysis)


def _by_name(analysis, name: str):
	matches = [b for b in analysis.bindings.values() if b.name == name]
	assert len(matches) == 1, matches
	return matches[0]


def test_kinds_follow_declaration_form():
	_fn, analysis, classes = _classify(
		"""
		function f(p) {
			var v = 1;
			{
				let l = 2;
				const c = 3;
				print(l + c);
			}
			for (let i = 0; i < 1; i = i + 1) {}
			for (const x of [1]) {}
		}
		"""
	)
	assert classes.kind(_by_name(analysis, "p").binding_id) is BindingKind.FUNCTION_SCOPED
	assert classes.kind(_by_name(analysis, "v").binding_id) is BindingKind.FUNCTION_SCOPED
	assert classes.kind(_by_name(analysis, "l").binding_id) is BindingKind.BLOCK_SCOPED_MUTABLE
	assert classes.kind(_by_name(analysis, "c").binding_id) is BindingKind.BLOCK_SCOPED_IMMUTABLE
	assert classes.kind(_by_name(analysis, "i").binding_id) is BindingKind.LOOP_SCOPED
	assert classes.kind(_by_name(analysis, "x").binding_id) is BindingKind.LOOP_SCOPED
	assert classes.immutable == frozenset(
		{_by_name(analysis, "c").binding_id, _by_name(analysis, "x").binding_id}
	)
	assert not BindingKind.FUNCTION_SCOPED.is_block_scoped
	assert BindingKind.LOOP_SCOPED.is_block_scoped


def test_capture_set_lists_closure_scopes():
	fn, analysis, classes = _classify(
		"""
		function f() {
			{
				let a = 1;
				let b = 2;
				var g = function () { return a; };
				var h = function () { return function () { return a; }; };
				print(b);
			}
		}
		"""
	)
	closures = nodes_of(fn, FunctionExpr)
	outer_g, outer_h, inner_h = closures
	a = _by_name(analysis, "a").binding_id
	b = _by_name(analysis, "b").binding_id
	assert classes.captured_by(a) == frozenset({outer_g.node_id, outer_h.node_id, inner_h.node_id})
	assert not classes.is_captured(b)
	assert classes.captured_by(b) == frozenset()


def test_function_var_captured_by_closure():
	_fn, analysis, classes = _classify("function f() { var n = 0; return function () { n = n + 1; return n; }; }")
	n = _by_name(analysis, "n").binding_id
	assert classes.is_captured(n)
	assert classes.is_written(n)
	assert not classes.is_per_iteration(n)


def test_per_iteration_requires_capture():
	_fn, analysis, classes = _classify(
		"""
		function f() {
			var fs = [];
			for (let i = 0; i < 3; i = i + 1) { push(fs, function () { return i; }); }
			for (let j = 0; j < 3; j = j + 1) { print(j); }
			return fs;
		}
		"""
	)
	assert classes.is_per_iteration(_by_name(analysis, "i").binding_id)
	assert not classes.is_per_iteration(_by_name(analysis, "j").binding_id)


def test_writes_are_recorded_in_source_order():
	_fn, analysis, classes = _classify("function f() { let a = 1; a = 2; { a = 3; } return a; }")
	a = _by_name(analysis, "a").binding_id
	writes = classes.writes[a]
	assert len(writes) == 2
	assert list(writes) == sorted(writes)


def test_const_assignment_is_rejected():
	with pytest.raises(ImmutableRebindingViolation) as excinfo:
		_classify("function f() { const c = 1; c = 2; return c; }")
	err = excinfo.value
	assert err.name == "c"
	assert err.code == "E0201"
	assert err.notes and "declared immutable" in err.notes[0]


def test_const_assignment_inside_closure_is_rejected():
	with pytest.raises(ImmutableRebindingViolation):
		_classify("function f() { { const c = 1; var g = function () { c = 2; }; } }")


def test_const_loop_header_assignment_is_rejected():
	with pytest.raises(ImmutableRebindingViolation):
		_classify("function f(xs) { for (const x of xs) { x = 1; } }")


def test_const_c_style_header_update_is_rejected():
	with pytest.raises(ImmutableRebindingViolation):
		_classify("function f() { for (const i = 0; i < 3; i = i + 1) {} }")
