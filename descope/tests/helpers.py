# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import io
from typing import Iterator, List, Tuple

from descope.emitter import format_program
from descope.interp import run_program
from descope.nodes import FunctionDef, Name, Node, Program, iter_children
from descope.parser import parse_program
from descope.pipeline import ProgramResult, TransformOptions, transform_program
from descope.runtime import BUILTIN_NAMES


def parse(src: str) -> Program:
	return parse_program(src)


def function_named(program: Program, name: str) -> FunctionDef:
	for fn in program.functions:
		if fn.name == name:
			return fn
	raise KeyError(name)


def walk(node: Node) -> Iterator[Node]:
	"""Preorder walk (same order as node id assignment)."""
	stack: List[Node] = [node]
	while stack:
		current = stack.pop()
		yield current
		stack.extend(reversed(list(iter_children(current))))


def nodes_of(node: Node, kind: type) -> List[Node]:
	return [n for n in walk(node) if isinstance(n, kind)]


def names_of(node: Node, ident: str) -> List[Name]:
	return [n for n in walk(node) if isinstance(n, Name) and n.ident == ident]


def globals_for(program: Program) -> frozenset[str]:
	return BUILTIN_NAMES | frozenset(fn.name for fn in program.functions)


def transform(src: str, **options: object) -> ProgramResult:
	return transform_program(parse(src), TransformOptions(**options))  # type: ignore[arg-type]


def run(program: Program) -> List[str]:
	return run_program(program, stdout=io.StringIO()).output


def run_source(src: str) -> List[str]:
	return run(parse(src))


def run_both(src: str, **options: object) -> Tuple[List[str], List[str], str]:
	"""Run `src` before and after the transform; returns both outputs and the emitted result."""
	original = run_source(src)
	result = transform(src, **options)
	assert result.ok, [d.message for d in result.diagnostics]
	return original, run(result.program), format_program(result.program)
