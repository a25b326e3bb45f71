# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from descope.tests.helpers import run_both


@pytest.fixture
def assert_equivalent():
	"""
	Check that a program prints the same lines before and after the transform.

	Returns the emitted transformed program so tests can also inspect its shape.
	"""

	def _check(src: str, expected: list[str] | None = None, **options: object) -> str:
		original, transformed, text = run_both(src, **options)
		assert transformed == original, text
		if expected is not None:
			assert original == expected
		return text

	return _check
