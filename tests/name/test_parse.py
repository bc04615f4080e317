# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import gc
import logging
from typing import List

import pytest
from lark import Token, Tree

from nomia.name import (
	AllocationKind,
	AtomicRef,
	BuiltinNamespace,
	InvalidInputError,
	InvalidTextError,
	NameSyntaxError,
	NestedRef,
	NotSupportedError,
	OutOfMemoryError,
	ParseErrorKind,
	ResolvedRef,
	VariableRef,
	parse,
	parse_in,
	parse_with,
)
from nomia.name.owned import Box, OwnedVec
from nomia.name.test_helpers import CountingCompiler, FailingAllocator


def _live_storage() -> int:
	gc.collect()
	return sum(1 for obj in gc.get_objects() if type(obj) in (Box, OwnedVec))


def _var_text(sub):
	assert isinstance(sub.name, VariableRef)
	return sub.name.var.text


def test_declarations_and_inputs_keep_source_order():
	name = parse("let a = f(); let b = g(); h(x: a, y: b)")

	decls = list(name.iter_declarations())
	assert [d.var.text for d in decls] == ["a", "b"]
	assert [d.val.name.name_id.id.text for d in decls] == ["f", "g"]

	term = name.terminal_substitution
	assert isinstance(term.name, AtomicRef)
	assert term.name.name_id.id.text == "h"
	assert [spec.input_id.text for spec in term.inputs] == ["x", "y"]
	assert [_var_text(spec.input_val.substitution) for spec in term.inputs] == ["a", "b"]
	assert all(spec.input_val.output_id is None for spec in term.inputs)


def test_unbound_declaration():
	name = parse("let _ = f(); g()")
	(decl,) = name.iter_declarations()
	assert decl.var is None
	assert decl.val.name.name_id.id.text == "f"


def test_nullary_and_positional_inputs():
	name = parse("f(a, b.out)")
	term = name.terminal_substitution
	assert len(term.inputs) == 2
	first, second = term.inputs
	assert first.input_id is None
	assert _var_text(first.input_val.substitution) == "a"
	assert second.input_val.output_id.text == "out"
	assert len(first.input_val.substitution.inputs) == 0

	empty = parse("f()").terminal_substitution
	assert len(empty.inputs) == 0
	assert len(empty.name.name_id.params) == 0
	assert empty.name.namespace_id is None


def test_variable_and_resolved_terminals():
	assert _var_text(parse("let a = f(); a").terminal_substitution) == "a"
	resolved = parse("resolved(r)").terminal_substitution.name
	assert isinstance(resolved, ResolvedRef)
	assert resolved.var.text == "r"


def test_nested_name_with_inputs():
	name = parse("(let a = f(); g(a))(x: b)")
	term = name.terminal_substitution
	assert isinstance(term.name, NestedRef)
	inner = term.name.nested
	assert [d.var.text for d in inner.iter_declarations()] == ["a"]
	assert inner.terminal_substitution.name.name_id.id.text == "g"
	(spec,) = term.inputs
	assert spec.input_id.text == "x"

	bare = parse("(f())").terminal_substitution
	assert isinstance(bare.name, NestedRef)
	assert len(bare.inputs) == 0


def test_builtin_namespace():
	term = parse("let a = fetch(); nix::drv[system=x86_64-linux](src: a.out)").terminal_substitution
	ref = term.name
	assert isinstance(ref, AtomicRef)
	assert isinstance(ref.namespace_id, BuiltinNamespace)
	assert ref.namespace_id.id.id.text == "nix"
	assert ref.name_id.id.text == "drv"
	assert [(p.name, p.val) for p in ref.name_id.params] == [("system", "x86_64-linux")]
	(spec,) = term.inputs
	assert spec.input_val.output_id.text == "out"


def test_parameters_keep_order_and_duplicates():
	params = parse("f[b=1, a=2, b=3]()").terminal_substitution.name.name_id.params
	assert [(p.name, p.val) for p in params] == [("b", "1"), ("a", "2"), ("b", "3")]


def test_string_parameter_values_are_unquoted():
	params = parse('f[msg="say \\"hi\\"", path="a\\\\b", v=1.2.3]()').terminal_substitution.name.name_id.params
	assert [p.val for p in params] == ['say "hi"', "a\\b", "1.2.3"]


def test_empty_parameter_list():
	ref = parse("f[]()").terminal_substitution.name
	assert len(ref.name_id.params) == 0


def test_comments_and_bytes_source():
	name = parse(b"# leading comment\nlet a = f(); # trailing\ng(a)\n")
	assert len(name.let_declarations) == 1
	assert name.terminal_substitution.name.name_id.id.text == "g"


def test_non_ascii_identifiers():
	term = parse("café(entrée: x)").terminal_substitution
	assert term.name.name_id.id.text == "café"
	assert term.inputs[0].input_id.text == "entrée"


@pytest.mark.parametrize("source", ["f(\x00)", b"f(\x00)", "\x00"])
def test_nul_in_source_is_invalid_input(source):
	compiler = CountingCompiler()
	with pytest.raises(InvalidInputError) as excinfo:
		parse(source, compiler=compiler)
	assert excinfo.value.kind is ParseErrorKind.INVALID_INPUT
	assert excinfo.value.position == source.index("\x00" if isinstance(source, str) else b"\x00")
	assert compiler.compile_calls == 0


def test_unencodable_source_is_invalid_input():
	compiler = CountingCompiler()
	with pytest.raises(InvalidInputError) as excinfo:
		parse("f\udcff()", compiler=compiler)
	assert excinfo.value.position == 1
	assert isinstance(excinfo.value.__cause__, UnicodeEncodeError)
	assert compiler.compile_calls == 0


@pytest.mark.parametrize("source", ["let a = f(", "", "f)", "let a = f()", "a b", "f(x: )"])
def test_syntax_errors_release_nothing(source):
	compiler = CountingCompiler()
	with pytest.raises(NameSyntaxError) as excinfo:
		parse(source, compiler=compiler)
	assert excinfo.value.kind is ParseErrorKind.SYNTAX_ERROR
	assert excinfo.value.detail
	assert compiler.compile_calls == 1
	assert compiler.handles == []
	assert compiler.release_calls == 0


def test_syntax_error_reports_position():
	with pytest.raises(NameSyntaxError) as excinfo:
		parse("let a = f();\ng(a))")
	assert excinfo.value.span.line == 2
	assert "2:" in str(excinfo.value)


def test_rejection_without_detail():
	class NoDetailCompiler(CountingCompiler):
		def compile(self, buffer):
			self.buffers.append(buffer)
			return None

	with pytest.raises(NameSyntaxError) as excinfo:
		parse("f()", compiler=NoDetailCompiler())
	assert str(excinfo.value) == "syntax error"
	assert excinfo.value.detail is None


@pytest.mark.parametrize(
	"source, construct",
	[
		("f@1()", "index"),
		("g(x: f@0(a))", "index"),
		("{g().out}::f()", "namespace"),
	],
)
def test_unsupported_forms_release_once(source, construct):
	compiler = CountingCompiler()
	with pytest.raises(NotSupportedError) as excinfo:
		parse(source, compiler=compiler)
	assert excinfo.value.kind is ParseErrorKind.NOT_SUPPORTED
	assert construct in excinfo.value.construct
	assert compiler.release_counts == [1]
	assert compiler.handles[0].released


def test_invalid_utf8_parameter_value_releases_once():
	compiler = CountingCompiler()
	with pytest.raises(InvalidTextError) as excinfo:
		parse(b'f[k="\xff"]()', compiler=compiler)
	assert excinfo.value.kind is ParseErrorKind.INVALID_TEXT
	assert isinstance(excinfo.value.__cause__, UnicodeError)
	assert compiler.release_counts == [1]


def test_invalid_utf8_outside_strings_is_a_syntax_error():
	with pytest.raises(NameSyntaxError):
		parse(b"f\xff()")


def test_success_releases_once():
	compiler = CountingCompiler()
	parse("let a = f(); g(a)", compiler=compiler)
	assert compiler.release_counts == [1]
	assert compiler.handles[0].released


def _hand_built(*ref_children, tag="variable_ref"):
	return lambda: Tree(
		"name",
		[Tree("declarations", []), Tree("substitution", [Tree(tag, list(ref_children))])],
	)


def test_unknown_tag_is_an_internal_fault():
	compiler = CountingCompiler(tree_factory=_hand_built(Token("IDENT", "x"), tag="mystery_ref"))
	with pytest.raises(AssertionError):
		parse("f()", compiler=compiler)
	assert compiler.release_counts == [1]


def test_bytes_payloads_are_validated():
	name = parse("f()", compiler=CountingCompiler(tree_factory=_hand_built("café".encode("utf-8"))))
	assert _var_text(name.terminal_substitution) == "café"

	compiler = CountingCompiler(tree_factory=_hand_built(b"caf\xff"))
	with pytest.raises(InvalidTextError):
		parse("f()", compiler=compiler)
	assert compiler.release_counts == [1]


ALLOC_SOURCE = "let a = f(); let b = g(); h(x: a, y: b)"


def test_allocation_requests_are_counted():
	alloc = FailingAllocator()
	parse_in(ALLOC_SOURCE, alloc)
	# declarations, two declaration boxes, the input list, two input boxes
	assert alloc.requests == 6
	assert alloc.refused == 0


def test_every_refused_request_is_out_of_memory():
	counting = FailingAllocator()
	parse_in(ALLOC_SOURCE, counting)
	total = counting.requests

	baseline = _live_storage()
	kinds: List[AllocationKind] = []
	for fail_on in range(total):
		compiler = CountingCompiler()
		try:
			parse_in(ALLOC_SOURCE, FailingAllocator(fail_on), compiler=compiler)
		except OutOfMemoryError as err:
			assert err.kind is ParseErrorKind.OUT_OF_MEMORY
			kinds.append(err.allocation)
		else:
			pytest.fail(f"request {fail_on} was refused but parse succeeded")
		assert compiler.release_counts == [1]
		del compiler

	assert len(kinds) == total
	assert kinds[0] is AllocationKind.COLLECTION
	assert kinds[1] is AllocationKind.NODE
	assert _live_storage() <= baseline


def test_parameter_lists_reserve_through_the_allocator():
	counting = FailingAllocator()
	parse_in("f[a=1, b=2]()", counting)
	assert counting.requests == 1

	with pytest.raises(OutOfMemoryError) as excinfo:
		parse_in("f[a=1, b=2]()", FailingAllocator(fail_on=0))
	assert excinfo.value.allocation is AllocationKind.COLLECTION


class ListParameters:
	"""Storage policy with no references or capacity: plain lists and values."""

	def __init__(self):
		self.counts = []

	def declaration_ref(self, decl):
		return Box(decl)

	def declarations(self, count):
		self.counts.append(("declarations", count))
		return _PushList()

	def nested_name(self, name):
		return Box(name)

	def substitution_ref(self, sub):
		return Box(sub)

	def substitution_specs(self, count):
		self.counts.append(("substitution_specs", count))
		return _PushList()

	def parameters(self, count):
		self.counts.append(("parameters", count))
		return _PushList()

	def identifier(self, text):
		return text.upper()

	def parameter_name(self, text):
		return text

	def parameter_value(self, text):
		return text


class _PushList(list):
	def push(self, item):
		self.append(item)

	def seal(self):
		pass


def test_parse_with_custom_policy():
	policy = ListParameters()
	name = parse_with("let a = f[k=v](); g(x: a)", policy)
	(decl,) = name.iter_declarations()
	assert decl.var.text == "A"
	assert decl.val.name.name_id.params[0].val == "v"
	assert policy.counts == [
		("declarations", 1),
		("parameters", 1),
		("substitution_specs", 0),
		("parameters", 0),
		("substitution_specs", 1),
		("substitution_specs", 0),
	]


def test_rejection_is_logged(caplog):
	caplog.set_level(logging.DEBUG, logger="nomia")
	with pytest.raises(NameSyntaxError):
		parse("f)")
	assert any(
		rec.name == "nomia.name.compiler" and "rejected" in rec.getMessage() for rec in caplog.records
	)


def test_conversion_abort_is_logged(caplog):
	caplog.set_level(logging.DEBUG, logger="nomia")
	with pytest.raises(NotSupportedError):
		parse("f@1()")
	assert any(rec.name == "nomia.name.serialize" for rec in caplog.records)


def test_deep_nesting_is_out_of_memory():
	depth = 1000
	compiler = CountingCompiler()
	with pytest.raises(OutOfMemoryError) as excinfo:
		parse("f(" * depth + ")" * depth, compiler=compiler)
	assert excinfo.value.allocation is AllocationKind.STACK
	assert isinstance(excinfo.value.__cause__, RecursionError)
	assert compiler.release_counts == [1]


def test_moderate_nesting_parses():
	sub = parse("f(" * 50 + ")" * 50).terminal_substitution
	depth = 1
	while len(sub.inputs):
		sub = sub.inputs[0].input_val.substitution
		depth += 1
	assert depth == 50


def test_parsed_collections_are_sealed():
	name = parse("let a = f[k=v](); g(x: a)")
	assert name.let_declarations.sealed
	assert name.terminal_substitution.inputs.sealed
	(decl,) = name.iter_declarations()
	assert decl.val.name.name_id.params.sealed
	assert decl.val.inputs.sealed
	with pytest.raises(RuntimeError):
		name.let_declarations.push(Box(decl))
	assert not hasattr(name.let_declarations, "clear")
	assert len(name.let_declarations) == 1


@pytest.mark.parametrize("source", ["let _ = f(); g(_)", "let _ = f(); _", "f(_: a)", "f[_=1]()"])
def test_lone_underscore_is_not_an_identifier(source):
	with pytest.raises(NameSyntaxError):
		parse(source)


def test_underscore_prefixed_identifiers():
	name = parse("let _a = f(); g(__: _a)")
	(decl,) = name.iter_declarations()
	assert decl.var.text == "_a"
	(spec,) = name.terminal_substitution.inputs
	assert spec.input_id.text == "__"
	assert _var_text(spec.input_val.substitution) == "_a"
