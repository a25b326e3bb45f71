# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
"""
Binding classification: tag every binding with its kind, reject writes to
immutable bindings, and compute which closures capture which bindings.

Pipeline placement:
  ScopeAnalysis → classify_bindings → BindingClassification → closure synthesizer

The capture relation is kept as an adjacency map (binding → closure scopes)
rather than as references between scope objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Set, Tuple

from descope.core.errors import ImmutableRebindingViolation
from descope.nodes import DeclKind, NodeId
from descope.scope_analyzer import Binding, BindingId, BindingOrigin, ScopeAnalysis, ScopeId, ScopeKind


class BindingKind(Enum):
	FUNCTION_SCOPED = "function_scoped"
	BLOCK_SCOPED_MUTABLE = "block_scoped_mutable"
	BLOCK_SCOPED_IMMUTABLE = "block_scoped_immutable"
	LOOP_SCOPED = "loop_scoped"

	@property
	def is_block_scoped(self) -> bool:
		return self is not BindingKind.FUNCTION_SCOPED


@dataclass(frozen=True)
class BindingClassification:
	kinds: Mapping[BindingId, BindingKind]
	immutable: FrozenSet[BindingId] = frozenset()
	# binding → closure (function) scopes nested inside its owner that reference it
	captures: Mapping[BindingId, FrozenSet[ScopeId]] = field(default_factory=dict)
	# binding → NodeIds of the references that write it, in source order
	writes: Mapping[BindingId, Tuple[NodeId, ...]] = field(default_factory=dict)

	def kind(self, binding_id: BindingId) -> BindingKind:
		return self.kinds[binding_id]

	def captured_by(self, binding_id: BindingId) -> FrozenSet[ScopeId]:
		return self.captures.get(binding_id, frozenset())

	def is_captured(self, binding_id: BindingId) -> bool:
		return bool(self.captures.get(binding_id))

	def is_written(self, binding_id: BindingId) -> bool:
		return bool(self.writes.get(binding_id))

	def is_per_iteration(self, binding_id: BindingId) -> bool:
		"""A loop header binding that some closure observes needs a fresh instance per iteration."""
		return self.kinds[binding_id] is BindingKind.LOOP_SCOPED and self.is_captured(binding_id)


def binding_kind(binding: Binding) -> BindingKind:
	if binding.is_function_scoped:
		return BindingKind.FUNCTION_SCOPED
	if binding.origin is BindingOrigin.LOOP_HEADER:
		return BindingKind.LOOP_SCOPED
	if binding.decl_kind is DeclKind.CONST:
		return BindingKind.BLOCK_SCOPED_IMMUTABLE
	return BindingKind.BLOCK_SCOPED_MUTABLE


def classify_bindings(analysis: ScopeAnalysis) -> BindingClassification:
	"""
	Classify all bindings of `analysis`.

	Raises ImmutableRebindingViolation at the first (source order) assignment
	to a `const` binding, including `const` loop header bindings.
	"""
	kinds: Dict[BindingId, BindingKind] = {}
	immutable: Set[BindingId] = set()
	for binding in analysis.bindings.values():
		kinds[binding.binding_id] = binding_kind(binding)
		if binding.decl_kind is DeclKind.CONST:
			immutable.add(binding.binding_id)

	captures: Dict[BindingId, Set[ScopeId]] = {}
	writes: Dict[BindingId, list[NodeId]] = {}
	for ref in analysis.references:
		if ref.binding_id is None:
			continue
		binding = analysis.binding(ref.binding_id)
		if ref.is_write:
			if binding.binding_id in immutable:
				raise ImmutableRebindingViolation(binding.name, ref.span, binding.span)
			writes.setdefault(binding.binding_id, []).append(ref.node_id)
		for scope in analysis.scope_chain(ref.scope_id):
			if scope.scope_id == binding.scope_id:
				break
			if scope.kind is ScopeKind.FUNCTION:
				captures.setdefault(binding.binding_id, set()).add(scope.scope_id)

	return BindingClassification(
		kinds=kinds,
		immutable=frozenset(immutable),
		captures={bid: frozenset(scopes) for bid, scopes in captures.items()},
		writes={bid: tuple(nodes) for bid, nodes in writes.items()},
	)


__all__ = ["BindingKind", "BindingClassification", "binding_kind", "classify_bindings"]
