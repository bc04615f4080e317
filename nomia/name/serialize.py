# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Parse adapter: source text -> Name.

The adapter hands the source to a grammar compiler, then walks the compiled
tree depth-first and rebuilds it through a storage policy. Sibling chains
(declarations, substitution inputs, parameters) are converted by counting the
chain, reserving a collection of exactly that size, then filling it left to
right, so a refused reservation always happens at one well-defined step.

The compiled tree is released exactly once whatever the outcome; a failed walk
leaves nothing behind, since partially built nodes are only referenced from
the aborted call frames.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from lark import Tree

from . import views
from .ast import (
	AtomicRef,
	BuiltinNamespace,
	Collection,
	Declaration,
	Identifier,
	Name,
	NameParameters,
	NameRef,
	NamespaceId,
	NestedRef,
	OutputRef,
	Parameter,
	ParameterizedId,
	Ref,
	ResolvedRef,
	Substitution,
	SubstitutionSpec,
	VariableRef,
)
from .compiler import DEFAULT_COMPILER, GrammarCompiler, Rejected, TERMINATOR
from .errors import (
	AllocError,
	AllocationKind,
	InvalidInputError,
	NameSyntaxError,
	NotSupportedError,
	OutOfMemoryError,
	ParseError,
	TryReserveError,
)
from .owned import GLOBAL, Allocator, OwnedName, OwnedNameParameters

logger = logging.getLogger(__name__)

Source = Union[str, bytes]


def parse(source: Source, *, compiler: Optional[GrammarCompiler] = None) -> OwnedName:
	"""Parse `source` into an owned Name using the global allocator."""
	return parse_in(source, GLOBAL, compiler=compiler)


def parse_in(
	source: Source,
	alloc: Allocator,
	*,
	compiler: Optional[GrammarCompiler] = None,
) -> OwnedName:
	"""Parse `source` into an owned Name whose storage comes from `alloc`."""
	return parse_with(source, OwnedNameParameters(alloc), compiler=compiler)


def parse_with(
	source: Source,
	params: NameParameters,
	*,
	compiler: Optional[GrammarCompiler] = None,
) -> Name:
	"""
	Parse `source` into a Name built through the storage policy `params`.

	Raises one of the `ParseError` subclasses:
	- InvalidInputError: the source cannot be handed to the compiler (the
	  compiler is not invoked);
	- NameSyntaxError: the compiler rejected the source;
	- InvalidTextError: a text payload in the tree is not valid UTF-8;
	- OutOfMemoryError: the storage policy refused a reservation, or the
	  source nests deeper than the interpreter stack allows;
	- NotSupportedError: the tree uses a form with no translation yet.
	"""
	if compiler is None:
		compiler = DEFAULT_COMPILER
	buffer = _to_compiler_input(source)
	result = compiler.compile(buffer)
	if result is None:
		raise NameSyntaxError()
	if isinstance(result, Rejected):
		raise NameSyntaxError(result.message, span=result.span)
	try:
		return _build_name(views.root(result), params)
	except TryReserveError as err:
		logger.debug("name conversion aborted: %s", err)
		raise OutOfMemoryError(AllocationKind.COLLECTION) from err
	except AllocError as err:
		logger.debug("name conversion aborted: %s", err)
		raise OutOfMemoryError(AllocationKind.NODE) from err
	except RecursionError as err:
		logger.debug("name conversion aborted: nesting exceeds the interpreter stack")
		raise OutOfMemoryError(AllocationKind.STACK) from err
	except ParseError as err:
		logger.debug("name conversion aborted: %s", err)
		raise
	finally:
		compiler.release(result)


def _to_compiler_input(source: Source) -> bytes:
	if isinstance(source, str):
		nul = source.find("\x00")
		if nul >= 0:
			raise InvalidInputError(f"source contains a NUL character at offset {nul}", position=nul)
		try:
			data = source.encode("utf-8")
		except UnicodeEncodeError as err:
			raise InvalidInputError(
				f"source cannot be encoded as UTF-8: {err.reason}", position=err.start
			) from err
	else:
		data = bytes(source)
		nul = data.find(TERMINATOR)
		if nul >= 0:
			raise InvalidInputError(f"source contains a NUL byte at offset {nul}", position=nul)
	return data + TERMINATOR


def _build_name(node: Tree, params: NameParameters) -> Name:
	decls_node, sub_node = views.name_parts(node)
	return Name(
		let_declarations=_build_declarations(decls_node, params),
		terminal_substitution=_build_substitution(sub_node, params),
	)


def _build_declarations(node: Tree, params: NameParameters) -> Collection[Ref[Declaration]]:
	decls = params.declarations(views.chain_length(node))
	for decl_node in views.iter_chain(node):
		decls.push(params.declaration_ref(_build_declaration(decl_node, params)))
	decls.seal()
	return decls


def _build_declaration(node: Tree, params: NameParameters) -> Declaration:
	binding, sub_node = views.declaration_parts(node)
	return Declaration(
		var=_build_binding(binding, params),
		val=_build_substitution(sub_node, params),
	)


def _build_binding(node: Tree, params: NameParameters) -> Optional[Identifier]:
	kind = views.binding_kind(node)
	if kind is views.BindingKind.UNBOUND:
		return None
	if kind is views.BindingKind.BOUND:
		return _identifier(views.bound_identifier(node), params)
	raise AssertionError(f"unhandled binding kind {kind}")


def _build_substitution(node: Tree, params: NameParameters) -> Substitution:
	ref_node, inputs_node = views.substitution_parts(node)
	return Substitution(
		name=_build_name_ref(ref_node, params),
		inputs=_build_inputs(inputs_node, params),
	)


def _build_name_ref(node: Tree, params: NameParameters) -> NameRef:
	kind = views.ref_kind(node)
	if kind is views.RefKind.ATOMIC:
		namespace_node, pid_node = views.atomic_parts(node)
		namespace = _build_namespace(namespace_node, params) if namespace_node is not None else None
		return AtomicRef(
			namespace_id=namespace,
			name_id=_build_parameterized_id(pid_node, params),
		)
	if kind is views.RefKind.VARIABLE:
		return VariableRef(_identifier(views.ref_identifier(node), params))
	if kind is views.RefKind.RESOLVED:
		return ResolvedRef(_identifier(views.ref_identifier(node), params))
	if kind is views.RefKind.NESTED:
		nested = _build_name(views.nested_name(node), params)
		return NestedRef(params.nested_name(nested))
	raise AssertionError(f"unhandled name reference kind {kind}")


def _build_namespace(node: Tree, params: NameParameters) -> NamespaceId:
	kind = views.namespace_kind(node)
	if kind is views.NamespaceKind.BUILTIN:
		return BuiltinNamespace(_build_parameterized_id(views.builtin_namespace_id(node), params))
	if kind is views.NamespaceKind.NAMED:
		raise NotSupportedError("namespace computed from the output of another name")
	raise AssertionError(f"unhandled namespace kind {kind}")


def _build_inputs(node: Optional[Tree], params: NameParameters) -> Collection[SubstitutionSpec]:
	kind = views.inputs_kind(node)
	if kind is views.InputsKind.NULLARY:
		specs = params.substitution_specs(0)
		specs.seal()
		return specs
	if kind is views.InputsKind.MULTIARY:
		index_node, specs_node = views.multiary_parts(node)
		if views.index_kind(index_node) is not views.IndexKind.DEFAULT:
			raise NotSupportedError("explicit output-selector index")
		specs = params.substitution_specs(views.chain_length(specs_node))
		for spec_node in views.iter_chain(specs_node):
			specs.push(_build_substitution_spec(spec_node, params))
		specs.seal()
		return specs
	raise AssertionError(f"unhandled inputs kind {kind}")


def _build_substitution_spec(node: Tree, params: NameParameters) -> SubstitutionSpec:
	input_id, output_node = views.spec_parts(node)
	return SubstitutionSpec(
		input_id=_identifier(input_id, params) if input_id is not None else None,
		input_val=_build_output_ref(output_node, params),
	)


def _build_output_ref(node: Tree, params: NameParameters) -> OutputRef:
	sub_node, output_id = views.output_ref_parts(node)
	sub = _build_substitution(sub_node, params)
	return OutputRef(
		name=params.substitution_ref(sub),
		output_id=_identifier(output_id, params) if output_id is not None else None,
	)


def _build_parameterized_id(node: Tree, params: NameParameters) -> ParameterizedId:
	ident, params_node = views.parameterized_id_parts(node)
	return ParameterizedId(
		id=_identifier(ident, params),
		params=_build_parameters(params_node, params),
	)


def _build_parameters(node: Optional[Tree], params: NameParameters) -> Collection[Parameter]:
	kind = views.params_kind(node)
	if kind is views.ParamsKind.UNPARAMETERIZED:
		result = params.parameters(0)
		result.seal()
		return result
	if kind is views.ParamsKind.PARAMETERIZED:
		chain = views.param_chain(node)
		result = params.parameters(views.chain_length(chain))
		for param_node in views.iter_chain(chain):
			key, value = views.param_parts(param_node)
			result.push(
				Parameter(
					name=params.parameter_name(views.copy_text(key)),
					val=params.parameter_value(views.copy_param_value(value)),
				)
			)
		result.seal()
		return result
	raise AssertionError(f"unhandled params kind {kind}")


def _identifier(payload: views.Payload, params: NameParameters) -> Identifier:
	return Identifier(params.identifier(views.copy_text(payload)))


__all__ = ["parse", "parse_in", "parse_with"]
