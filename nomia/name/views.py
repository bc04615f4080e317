# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Typed accessors over a compiled name tree.

These functions are the only code that knows how `grammar.lark` shapes its
tree. Each one checks the node it is handed and returns the node's parts;
every tagged construct is exposed as an enum so callers can match it
exhaustively. A node with an unknown tag or shape means this module and the
grammar disagree, which is a bug rather than bad input, so it raises
`AssertionError`.

Optional grammar parts arrive as None children (`maybe_placeholders=True`).
Text payloads are `lark.Token`s from the lark compiler, but any `str` or
`bytes` payload is accepted so other compilers can feed the same views.
"""

from __future__ import annotations

import re
from enum import Enum, auto
from typing import Iterator, List, Optional, Tuple, Union

from lark import Token, Tree

from .compiler import TreeHandle
from .errors import InvalidTextError

Payload = Union[str, bytes]


class RefKind(Enum):
	ATOMIC = auto()
	VARIABLE = auto()
	RESOLVED = auto()
	NESTED = auto()


class InputsKind(Enum):
	NULLARY = auto()
	MULTIARY = auto()


class IndexKind(Enum):
	DEFAULT = auto()
	EXPLICIT = auto()


class BindingKind(Enum):
	UNBOUND = auto()
	BOUND = auto()


class ParamsKind(Enum):
	UNPARAMETERIZED = auto()
	PARAMETERIZED = auto()


class NamespaceKind(Enum):
	BUILTIN = auto()
	NAMED = auto()


_REF_KINDS = {
	"atomic_ref": RefKind.ATOMIC,
	"variable_ref": RefKind.VARIABLE,
	"resolved_ref": RefKind.RESOLVED,
	"nested_ref": RefKind.NESTED,
}

_BINDING_KINDS = {
	"unbound": BindingKind.UNBOUND,
	"bound": BindingKind.BOUND,
}

_NAMESPACE_KINDS = {
	"builtin_namespace": NamespaceKind.BUILTIN,
	"named_namespace": NamespaceKind.NAMED,
}

# list node -> element node
_CHAINS = {
	"declarations": "declaration",
	"spec_list": "substitution_spec",
	"param_list": "param",
}

_STRING_ESCAPE = re.compile(r'\\(["\\])')


def _name(node: object) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return type(node).__name__


def _unreachable(expected: str, node: object) -> AssertionError:
	return AssertionError(f"name tree mismatch: expected {expected}, got {_name(node)!r}")


def _expect(node: object, kind: str) -> Tree:
	if not isinstance(node, Tree) or _name(node) != kind:
		raise _unreachable(kind, node)
	return node


def _children(node: Tree, count: int) -> List[object]:
	if len(node.children) != count:
		raise AssertionError(
			f"name tree mismatch: {_name(node)!r} has {len(node.children)} children, expected {count}"
		)
	return list(node.children)


def _payload(node: object, token_type: str) -> Payload:
	if isinstance(node, Token):
		if node.type != token_type:
			raise _unreachable(token_type, node)
		return node
	if isinstance(node, (str, bytes)):
		return node
	raise _unreachable(token_type, node)


def _optional_payload(node: object, token_type: str) -> Optional[Payload]:
	if node is None:
		return None
	return _payload(node, token_type)


def root(handle: TreeHandle) -> Tree:
	"""The top-level `name` node held by a live handle."""
	return _expect(handle.root, "name")


def name_parts(node: Tree) -> Tuple[Tree, Tree]:
	"""(declarations chain, terminal substitution)"""
	decls, sub = _children(_expect(node, "name"), 2)
	return _expect(decls, "declarations"), _expect(sub, "substitution")


def declaration_parts(node: Tree) -> Tuple[Tree, Tree]:
	"""(binding, substitution)"""
	binding, sub = _children(_expect(node, "declaration"), 2)
	if not isinstance(binding, Tree):
		raise _unreachable("binding", binding)
	return binding, _expect(sub, "substitution")


def binding_kind(node: Tree) -> BindingKind:
	kind = _BINDING_KINDS.get(_name(node))
	if kind is None:
		raise _unreachable("binding", node)
	return kind


def bound_identifier(node: Tree) -> Payload:
	(ident,) = _children(_expect(node, "bound"), 1)
	return _payload(ident, "IDENT")


def substitution_parts(node: Tree) -> Tuple[Tree, Optional[Tree]]:
	"""(name reference, inputs or None when the substitution has none)"""
	children = _expect(node, "substitution").children
	if len(children) == 1:
		ref, inputs = children[0], None
	elif len(children) == 2:
		ref, inputs = children
	else:
		raise _unreachable("substitution with 1 or 2 parts", node)
	if not isinstance(ref, Tree):
		raise _unreachable("name reference", ref)
	if inputs is not None:
		inputs = _expect(inputs, "multiary")
	return ref, inputs


def ref_kind(node: Tree) -> RefKind:
	kind = _REF_KINDS.get(_name(node))
	if kind is None:
		raise _unreachable("name reference", node)
	return kind


def atomic_parts(node: Tree) -> Tuple[Optional[Tree], Tree]:
	"""(namespace or None when unqualified, parameterized id)"""
	namespace, pid = _children(_expect(node, "atomic_ref"), 2)
	if namespace is not None and not isinstance(namespace, Tree):
		raise _unreachable("namespace", namespace)
	return namespace, _expect(pid, "parameterized_id")


def namespace_kind(node: Tree) -> NamespaceKind:
	kind = _NAMESPACE_KINDS.get(_name(node))
	if kind is None:
		raise _unreachable("namespace", node)
	return kind


def builtin_namespace_id(node: Tree) -> Tree:
	(pid,) = _children(_expect(node, "builtin_namespace"), 1)
	return _expect(pid, "parameterized_id")


def named_namespace_output(node: Tree) -> Tree:
	(output,) = _children(_expect(node, "named_namespace"), 1)
	return _expect(output, "output_ref")


def ref_identifier(node: Tree) -> Payload:
	"""The identifier of a variable or resolved reference."""
	if _name(node) not in ("variable_ref", "resolved_ref"):
		raise _unreachable("variable_ref or resolved_ref", node)
	(ident,) = _children(node, 1)
	return _payload(ident, "IDENT")


def nested_name(node: Tree) -> Tree:
	(name,) = _children(_expect(node, "nested_ref"), 1)
	return _expect(name, "name")


def inputs_kind(node: Optional[Tree]) -> InputsKind:
	if node is None:
		return InputsKind.NULLARY
	if _name(node) == "multiary":
		return InputsKind.MULTIARY
	raise _unreachable("inputs", node)


def multiary_parts(node: Tree) -> Tuple[Optional[Tree], Optional[Tree]]:
	"""(graph index or None, substitution spec chain or None when empty)"""
	index, specs = _children(_expect(node, "multiary"), 2)
	if index is not None:
		index = _expect(index, "graph_index")
	if specs is not None:
		specs = _expect(specs, "spec_list")
	return index, specs


def index_kind(node: Optional[Tree]) -> IndexKind:
	if node is None:
		return IndexKind.DEFAULT
	if _name(node) == "graph_index":
		return IndexKind.EXPLICIT
	raise _unreachable("graph index", node)


def spec_parts(node: Tree) -> Tuple[Optional[Payload], Tree]:
	"""(input id or None when positional, output reference)"""
	input_id, output = _children(_expect(node, "substitution_spec"), 2)
	return _optional_payload(input_id, "IDENT"), _expect(output, "output_ref")


def output_ref_parts(node: Tree) -> Tuple[Tree, Optional[Payload]]:
	"""(substitution, output id or None for the default output)"""
	sub, output_id = _children(_expect(node, "output_ref"), 2)
	return _expect(sub, "substitution"), _optional_payload(output_id, "IDENT")


def parameterized_id_parts(node: Tree) -> Tuple[Payload, Optional[Tree]]:
	"""(identifier, params or None when unparameterized)"""
	ident, params = _children(_expect(node, "parameterized_id"), 2)
	if params is not None:
		params = _expect(params, "params")
	return _payload(ident, "IDENT"), params


def params_kind(node: Optional[Tree]) -> ParamsKind:
	if node is None:
		return ParamsKind.UNPARAMETERIZED
	if _name(node) == "params":
		return ParamsKind.PARAMETERIZED
	raise _unreachable("params", node)


def param_chain(node: Tree) -> Optional[Tree]:
	"""The parameter chain of a `params` node, None for `[]`."""
	(chain,) = _children(_expect(node, "params"), 1)
	if chain is None:
		return None
	return _expect(chain, "param_list")


def param_parts(node: Tree) -> Tuple[Payload, Payload]:
	"""(key, value)"""
	key, value = _children(_expect(node, "param"), 2)
	if isinstance(value, Token) and value.type not in ("IDENT", "NUMBER", "STRING"):
		raise _unreachable("parameter value", value)
	if not isinstance(value, (str, bytes)):
		raise _unreachable("parameter value", value)
	return _payload(key, "IDENT"), value


def chain_length(node: Optional[Tree]) -> int:
	"""Number of elements in a sibling chain; an absent chain is empty."""
	if node is None:
		return 0
	if _name(node) not in _CHAINS:
		raise _unreachable("list", node)
	return len(node.children)


def iter_chain(node: Optional[Tree]) -> Iterator[Tree]:
	"""Elements of a sibling chain, in source order."""
	if node is None:
		return
	element = _CHAINS.get(_name(node))
	if element is None:
		raise _unreachable("list", node)
	for child in node.children:
		yield _expect(child, element)


def copy_text(payload: Payload) -> str:
	"""Copy a text payload out of the tree, validating it as UTF-8."""
	if isinstance(payload, bytes):
		try:
			return payload.decode("utf-8")
		except UnicodeDecodeError as err:
			raise InvalidTextError(f"text payload is not valid UTF-8: {err}") from err
	if isinstance(payload, str):
		text = payload.value if isinstance(payload, Token) else payload
		try:
			text.encode("utf-8")
		except UnicodeEncodeError as err:
			raise InvalidTextError(f"text payload is not valid UTF-8: {err}") from err
		return str(text)
	raise _unreachable("text payload", payload)


def copy_param_value(payload: Payload) -> str:
	"""Like `copy_text`, also unquoting STRING values."""
	text = copy_text(payload)
	if isinstance(payload, Token) and payload.type == "STRING":
		return _STRING_ESCAPE.sub(r"\1", text[1:-1])
	return text


__all__ = [
	"BindingKind",
	"IndexKind",
	"InputsKind",
	"NamespaceKind",
	"ParamsKind",
	"RefKind",
	"atomic_parts",
	"binding_kind",
	"bound_identifier",
	"builtin_namespace_id",
	"chain_length",
	"copy_param_value",
	"copy_text",
	"declaration_parts",
	"index_kind",
	"inputs_kind",
	"iter_chain",
	"multiary_parts",
	"name_parts",
	"named_namespace_output",
	"nested_name",
	"output_ref_parts",
	"param_chain",
	"param_parts",
	"parameterized_id_parts",
	"params_kind",
	"ref_identifier",
	"ref_kind",
	"root",
	"spec_parts",
	"substitution_parts",
]
