# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Basic AST for names.

A name is a (possibly empty) sequence of let-bound node declarations followed
by a terminal substitution:

	let a = f();
	let b = g[version=2]();
	h(x: a, y: b.out)

The node shapes below are storage-agnostic. Where a node holds a reference to
another node, a sequence of nodes, or a piece of text, the concrete type comes
from a storage policy implementing `NameParameters`. `nomia.name.owned`
provides the one production policy (exclusive ownership, growable sequences);
other policies (arena + index, borrowed views) only need to satisfy the same
protocol.

Nodes are never mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterator, Optional, Protocol, TypeVar, Union

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Ref(Protocol[T_co]):
	"""A reference to a node; `as_ref` returns the node itself."""

	def as_ref(self) -> T_co:
		...


class Collection(Protocol[T]):
	"""
	An ordered sequence that is filled once, left to right.

	The builder pushes every item, then calls `seal`; a sealed sequence accepts
	no further items.
	"""

	def push(self, item: T) -> None:
		...

	def seal(self) -> None:
		...

	def __iter__(self) -> Iterator[T]:
		...

	def __len__(self) -> int:
		...


class Text(Protocol):
	"""A text payload. `str(text)` returns its contents."""

	def __str__(self) -> str:
		...


class NameParameters(Protocol):
	"""
	Type parameters for the Name AST, expressed as factories.

	Implementing this protocol lets a caller choose alternative reference,
	sequence and text types. Factories that create references or sequences may
	refuse: they raise `TryReserveError` when a sequence cannot reserve the
	requested capacity and `AllocError` when a single reference cannot be
	allocated. Sequence factories receive the exact number of items that will
	be pushed.
	"""

	def declaration_ref(self, decl: "Declaration") -> Ref["Declaration"]:
		"""A reference to a node declaration, held in the top-level Name."""
		...

	def declarations(self, count: int) -> Collection[Ref["Declaration"]]:
		...

	def nested_name(self, name: "Name") -> Ref["Name"]:
		"""A reference to another Name composed into the Name being defined."""
		...

	def substitution_ref(self, sub: "Substitution") -> Ref["Substitution"]:
		"""
		A reference to a Substitution nested under another Substitution.

		For example, in `foo(bar: baz(qux: quux))`, `baz(qux: quux)` is held
		through a substitution reference.
		"""
		...

	def substitution_specs(self, count: int) -> Collection["SubstitutionSpec"]:
		...

	def parameters(self, count: int) -> Collection["Parameter"]:
		...

	def identifier(self, text: str) -> Text:
		...

	def parameter_name(self, text: str) -> Text:
		...

	def parameter_value(self, text: str) -> Text:
		...


P = TypeVar("P", bound=NameParameters)


def deref(ref: Ref[T]) -> T:
	"""Return the node behind a storage reference."""
	return ref.as_ref()


@dataclass(frozen=True)
class Identifier(Generic[P]):
	"""An opaque identifier."""

	text: Text

	def __str__(self) -> str:
		return str(self.text)


@dataclass(frozen=True)
class Parameter(Generic[P]):
	"""A key-value pair parameterizing some identifier."""

	name: Text
	val: Text


@dataclass(frozen=True)
class ParameterizedId(Generic[P]):
	"""An identifier paired with a parameter list."""

	id: Identifier[P]
	params: Collection[Parameter[P]]


@dataclass(frozen=True)
class OutputRef(Generic[P]):
	"""
	A reference to an output of some substitution.

	`output_id` of None means the output must be inferred during resolution
	(there is only one, or the name has a default output).
	"""

	name: Ref["Substitution[P]"]
	output_id: Optional[Identifier[P]] = None

	@property
	def substitution(self) -> "Substitution[P]":
		return deref(self.name)


class NamespaceId:
	"""An identification of a namespace within the root namespace of namespaces."""


@dataclass(frozen=True)
class BuiltinNamespace(NamespaceId, Generic[P]):
	"""A namespace identified by an opaque id and parameters."""

	id: ParameterizedId[P]


@dataclass(frozen=True)
class NamedNamespace(NamespaceId, Generic[P]):
	"""A namespace identified as the output of some other name."""

	output: OutputRef[P]


class NameRef:
	"""An identification of the name a Substitution invokes."""


@dataclass(frozen=True)
class AtomicRef(NameRef, Generic[P]):
	"""
	An atomic name, with no substitutions.

	`namespace_id` of None means the namespace is filled in from the context
	the name is resolved in.
	"""

	name_id: ParameterizedId[P]
	namespace_id: Optional[NamespaceId] = None


@dataclass(frozen=True)
class VariableRef(NameRef, Generic[P]):
	"""A variable, which must be bound somewhere within the scope of the usage."""

	var: Identifier[P]


@dataclass(frozen=True)
class ResolvedRef(NameRef, Generic[P]):
	"""
	A resolved name reference.

	The variable must be bound to an appropriate resolved name when resolving
	the name it is referenced within.
	"""

	var: Identifier[P]


@dataclass(frozen=True)
class NestedRef(NameRef, Generic[P]):
	"""A recursively inlined other name."""

	name: Ref["Name[P]"]

	@property
	def nested(self) -> "Name[P]":
		return deref(self.name)


@dataclass(frozen=True)
class SubstitutionSpec(Generic[P]):
	"""
	A specification of an input to be substituted.

	`input_id` of None means the input is matched positionally.
	"""

	input_val: OutputRef[P]
	input_id: Optional[Identifier[P]] = None


@dataclass(frozen=True)
class Substitution(Generic[P]):
	"""A name together with the inputs substituted into it."""

	name: Union[AtomicRef[P], VariableRef[P], ResolvedRef[P], NestedRef[P]]
	inputs: Collection[SubstitutionSpec[P]]


@dataclass(frozen=True)
class Declaration(Generic[P]):
	"""
	A node declaration in a composition graph.

	The substituted name can optionally be bound to a variable; an unbound
	declaration holds its place in the sequence but cannot be referenced.
	"""

	val: Substitution[P]
	var: Optional[Identifier[P]] = None


@dataclass(frozen=True)
class Name(Generic[P]):
	"""A let-bound sequence of declarations plus a terminal substitution."""

	let_declarations: Collection[Ref[Declaration[P]]]
	terminal_substitution: Substitution[P]

	def iter_declarations(self) -> Iterator[Declaration[P]]:
		for ref in self.let_declarations:
			yield deref(ref)


__all__ = [
	"AtomicRef",
	"BuiltinNamespace",
	"Collection",
	"Declaration",
	"Identifier",
	"Name",
	"NameParameters",
	"NameRef",
	"NamedNamespace",
	"NamespaceId",
	"NestedRef",
	"OutputRef",
	"Parameter",
	"ParameterizedId",
	"Ref",
	"ResolvedRef",
	"Substitution",
	"SubstitutionSpec",
	"Text",
	"VariableRef",
	"deref",
]
