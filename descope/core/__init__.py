"""
descope.core: shared span/diagnostic/error types used across stages.

Modules:
  - span: source locations
  - diagnostics: Diagnostic record + renderers
  - errors: TransformError taxonomy
"""

__all__ = [
	"span",
	"diagnostics",
	"errors",
]
