# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
descope command-line driver.

  descope prog.js                 print the transformed program
  descope prog.js -o out.js       write it to a file instead
  descope prog.js --emit-input    print the parsed input (normalized), no transform
  descope prog.js --run           run input and output, compare what they print
  descope prog.js --json          machine-readable diagnostics

Exit code 0 on success; 1 when any function failed to transform, the source
does not parse, or `--run` observed different output.
"""

from __future__ import annotations

import argparse
import io
import json
import sys
from pathlib import Path
from typing import List

from descope.core.diagnostics import Diagnostic, diag_to_json, format_diagnostic
from descope.core.errors import TransformError
from descope.emitter import format_program
from descope.interp import run_program
from descope.nodes import Program
from descope.parser import parse_source
from descope.pipeline import TransformOptions, transform_program


def _report(diagnostics: List[Diagnostic], source: Path, *, as_json: bool, exit_code: int, extra: dict | None = None) -> int:
	if as_json:
		payload = {
			"exit_code": exit_code,
			"diagnostics": [diag_to_json(diag, "driver", source) for diag in diagnostics],
		}
		if extra:
			payload.update(extra)
		print(json.dumps(payload))
	else:
		for diag in diagnostics:
			print(format_diagnostic(diag, source), file=sys.stderr)
	return exit_code


def _run_capture(program: Program) -> List[str]:
	"""Run `program` and return the lines it printed; runtime failures propagate."""
	return run_program(program, stdout=io.StringIO()).output


def _compare_runs(original: Program, transformed: Program, source: Path) -> tuple[dict, List[Diagnostic]]:
	diagnostics: List[Diagnostic] = []
	outputs = {}
	for label, program in (("original", original), ("transformed", transformed)):
		try:
			outputs[label] = _run_capture(program)
		except (RuntimeError, TypeError, ValueError, IndexError) as err:
			outputs[label] = None
			diagnostics.append(
				Diagnostic(message=f"{label} program failed at runtime: {err}", code="E0901", phase="run")
			)
	match = outputs["original"] == outputs["transformed"] and not diagnostics
	if not match and not diagnostics:
		diagnostics.append(
			Diagnostic(message="transformed program output differs from the original", code="E0902", phase="run")
		)
	return {"original": outputs["original"], "transformed": outputs["transformed"], "match": match}, diagnostics


def main(argv: list[str] | None = None) -> int:
	"""
	Parse a source file, transform every function and print the result.

	With --json, prints structured diagnostics (phase/code/message/severity/file/
	line/column) and an exit_code; otherwise prints human-readable messages to
	stderr.
	"""
	parser = argparse.ArgumentParser(prog="descope", description="Lower block-scoped bindings to function-scoped vars")
	parser.add_argument("source", type=Path, help="Path to the source file")
	parser.add_argument("-o", "--output", type=Path, help="Write the transformed program to this path")
	parser.add_argument("--emit-input", action="store_true", help="Print the parsed input program and stop")
	parser.add_argument("--run", action="store_true", help="Run input and transformed program and compare their output")
	parser.add_argument(
		"--json",
		action="store_true",
		help="Emit diagnostics as JSON (phase/code/message/severity/file/line/column)",
	)
	parser.add_argument(
		"--no-hoist",
		dest="hoist",
		action="store_false",
		default=True,
		help="Never construct loop wrappers once before the loop",
	)
	parser.add_argument("--strict", action="store_true", help="Stop at the first function that fails to transform")
	parser.add_argument(
		"--global",
		dest="globals",
		action="append",
		default=[],
		help="Extra global name visible to every function (repeatable)",
	)
	args = parser.parse_args(argv)

	source_path: Path = args.source
	try:
		source = source_path.read_text(encoding="utf-8")
	except OSError as err:
		diag = Diagnostic(message=f"cannot read source: {err.strerror or err}", code="E0900", phase="driver")
		return _report([diag], source_path, as_json=args.json, exit_code=1)

	program, parse_diags = parse_source(source, source_path)
	if program is None:
		return _report(parse_diags, source_path, as_json=args.json, exit_code=1)

	if args.emit_input:
		text = format_program(program)
		if args.json:
			return _report([], source_path, as_json=True, exit_code=0, extra={"program": text})
		sys.stdout.write(text)
		return 0

	options = TransformOptions(
		hoist_loop_closures=args.hoist,
		globals=frozenset(args.globals),
		strict=args.strict,
	)
	try:
		result = transform_program(program, options)
	except TransformError as err:
		return _report([err.to_diagnostic()], source_path, as_json=args.json, exit_code=1)

	diagnostics = list(result.diagnostics)
	text = format_program(result.program)
	extra: dict = {}
	if args.output is not None:
		args.output.write_text(text, encoding="utf-8")
	elif not args.json:
		sys.stdout.write(text)
	else:
		extra["program"] = text

	if args.run and result.ok:
		# Run a fresh parse of the input: the stages annotate node ids in place.
		original, _ = parse_source(source, source_path)
		assert original is not None
		run_info, run_diags = _compare_runs(original, result.program, source_path)
		diagnostics.extend(run_diags)
		extra["run"] = run_info
		if not args.json and run_info["match"]:
			print(f"run: outputs match ({len(run_info['original'])} line(s))", file=sys.stderr)

	exit_code = 1 if diagnostics else 0
	return _report(diagnostics, source_path, as_json=args.json, exit_code=exit_code, extra=extra)


if __name__ == "__main__":  # pragma: no cover
	sys.exit(main())
