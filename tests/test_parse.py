"""Tests for configuration parsing."""

import json

import pytest
from hypothesis import given, strategies as st

from feat.nodes import (
    BoolNode,
    DictNode,
    FloatNode,
    IntNode,
    ListNode,
    SetNode,
    StrNode,
    TupleNode,
)
from feat.parse import (
    DEFAULT_ALPHABET,
    BoolDomainError,
    BoundsError,
    ConfigFile,
    DomainSyntaxError,
    InvalidConfigError,
    InvalidRandomCountError,
    LengthMismatchError,
    MalformedDocumentError,
    MissingFieldError,
    NegativeSizeError,
    TypeDeclarationError,
    UnexpectedFieldError,
    load_config,
    parse,
    parse_domain,
    parse_num_random,
    parse_range,
    parse_type_domains,
    parse_types,
)


def document(**overrides):
    data = {
        "fname": "add",
        "types": ["int", "int"],
        "exhaustive domain": ["0~2", "0~2"],
        "random domain": ["0~10", "0~10"],
        "num random": 0,
    }
    for key, value in overrides.items():
        data[key.replace("_", " ")] = value
    return json.dumps(data)


# =============================================================================
# Type declarations
# =============================================================================


@pytest.mark.parametrize(
    "declaration,expected",
    [
        ("int", IntNode()),
        ("float", FloatNode()),
        ("bool", BoolNode()),
        ("list(int)", ListNode(child=IntNode())),
        ("tuple(float)", TupleNode(child=FloatNode())),
        ("set(bool)", SetNode(child=BoolNode())),
        ("str(abc)", StrNode(alphabet="abc")),
        ("str()", StrNode(alphabet="")),
        (
            "dict(int:list(str(xy)))",
            DictNode(key=IntNode(), value=ListNode(child=StrNode(alphabet="xy"))),
        ),
        ("  list( tuple( int ) ) ", ListNode(child=TupleNode(child=IntNode()))),
    ],
)
def test_parse_types(declaration, expected):
    assert parse_types(declaration) == expected


def test_bare_str_uses_default_alphabet():
    node = parse_types("dict(str:float)")
    assert isinstance(node, DictNode)
    assert node.key == StrNode(alphabet=DEFAULT_ALPHABET)
    assert node.value == FloatNode()


def test_str_alphabet_may_contain_grammar_characters():
    node = parse_types("dict(str(a:b,):int)")
    assert node.key.alphabet == ("a", ":", "b", ",")


@pytest.mark.parametrize(
    "declaration",
    [
        "foo",
        "",
        "Int",
        "list",
        "list()",
        "list(int",
        "list(int))",
        "int(3)",
        "dict(int)",
        "dict(int:)",
        "dict(:int)",
        "list(foo)",
        "int int",
        "str(abc",
    ],
)
def test_malformed_type_declarations_fail(declaration):
    with pytest.raises(TypeDeclarationError):
        parse_types(declaration)


@pytest.mark.parametrize(
    "declaration",
    ["set(list(int))", "set(dict(int:int))", "dict(set(int):int)", "set(tuple(list(int)))"],
)
def test_unhashable_set_elements_and_dict_keys_fail(declaration):
    with pytest.raises(TypeDeclarationError, match="hashable"):
        parse_types(declaration)


def test_type_error_reports_position():
    with pytest.raises(TypeDeclarationError, match="position 5"):
        parse_types("list(foo)")


# =============================================================================
# Ranges
# =============================================================================


@given(st.integers(-1000, 1000), st.integers(0, 50))
def test_valid_range_is_inclusive(start, length):
    stop = start + length
    assert list(parse_range(f"{start}~{stop}")) == list(range(start, stop + 1))


@given(st.integers(-1000, 1000), st.integers(1, 50))
def test_reversed_range_fails(stop, gap):
    with pytest.raises(BoundsError):
        parse_range(f"{stop + gap}~{stop}")


@pytest.mark.parametrize("spec", ["1~", "~2", "a~b", "1.5~2", "1~2~3"])
def test_malformed_range_fails(spec):
    with pytest.raises(BoundsError):
        parse_range(spec)


# =============================================================================
# Domains
# =============================================================================


@pytest.mark.parametrize(
    "declaration,expected",
    [
        ("0~2", (0, 1, 2)),
        ("-2~0", (-2, -1, 0)),
        ("3, 1, 2", (1, 2, 3)),
        ("[1, 2, 2]", (1, 2)),
        ("5", (5,)),
        ("", ()),
        ("[]", ()),
    ],
)
def test_int_domains(declaration, expected):
    node = parse_domain(IntNode(), declaration, "exhaustive")
    assert node.exhaustive == expected
    assert node.random == ()


def test_float_domain_list():
    node = parse_domain(FloatNode(), "1.5, -2, 3e2", "random")
    assert node.random == (-2.0, 1.5, 300.0)


def test_float_domain_range_expands_integers():
    node = parse_domain(FloatNode(), "0~2", "exhaustive")
    assert node.exhaustive == (0.0, 1.0, 2.0)
    assert all(isinstance(v, float) for v in node.exhaustive)


@pytest.mark.parametrize("declaration", ["abc", "1, x", "nan", "inf"])
def test_invalid_float_domain(declaration):
    with pytest.raises(DomainSyntaxError):
        parse_domain(FloatNode(), declaration, "exhaustive")


@pytest.mark.parametrize("declaration", ["1.5", "one", "1,,2", "1, 2,"])
def test_invalid_int_domain(declaration):
    with pytest.raises(DomainSyntaxError):
        parse_domain(IntNode(), declaration, "exhaustive")


@pytest.mark.parametrize("declaration,expected", [("0, 1", (0, 1)), ("0~1", (0, 1)), ("1", (1,))])
def test_bool_domains(declaration, expected):
    assert parse_domain(BoolNode(), declaration, "exhaustive").exhaustive == expected


@pytest.mark.parametrize("declaration", ["2", "0, 1, 2", "-1", "0~2", "-1~1"])
def test_bool_domain_outside_zero_one_fails(declaration):
    with pytest.raises(BoolDomainError):
        parse_domain(BoolNode(), declaration, "exhaustive")


def test_str_domain_is_lengths():
    node = parse_domain(StrNode(alphabet="ab"), "0~2", "exhaustive")
    assert node.exhaustive == (0, 1, 2)
    assert node.alphabet == ("a", "b")


def test_list_domain_sets_child_domain():
    node = parse_domain(ListNode(child=IntNode()), "1~2(5, 6)", "exhaustive")
    assert node.exhaustive == (1, 2)
    assert node.child.exhaustive == (5, 6)


def test_nested_domains_recurse():
    node = parse_types("list(tuple(str(ab)))")
    node = parse_domain(node, "0, 1(2([0, 1]))", "random")
    assert node.random == (0, 1)
    assert node.child.random == (2,)
    assert node.child.child.random == (0, 1)


def test_dict_domain_splits_key_and_value():
    node = parse_types("dict(int:list(bool))")
    node = parse_domain(node, "1~2(0~3:0(1))", "exhaustive")
    assert node.exhaustive == (1, 2)
    assert node.key.exhaustive == (0, 1, 2, 3)
    assert node.value.exhaustive == (0,)
    assert node.value.child.exhaustive == (1,)


def test_dict_with_container_key_domain():
    node = parse_types("dict(tuple(int):int)")
    node = parse_domain(node, "1(2(0, 1):7)", "exhaustive")
    assert node.key.exhaustive == (2,)
    assert node.key.child.exhaustive == (0, 1)
    assert node.value.exhaustive == (7,)


def test_parse_domain_keeps_other_domain():
    node = parse_domain(ListNode(child=IntNode()), "1(0)", "exhaustive")
    node = parse_domain(node, "2(5)", "random")
    assert node.exhaustive == (1,)
    assert node.child.exhaustive == (0,)
    assert node.random == (2,)
    assert node.child.random == (5,)


@pytest.mark.parametrize(
    "declaration",
    ["-1(0)", "0, -2(0)", "-1~2(0)"],
)
def test_negative_container_size_fails(declaration):
    with pytest.raises(NegativeSizeError):
        parse_domain(ListNode(child=IntNode()), declaration, "exhaustive")


def test_negative_string_length_fails():
    with pytest.raises(NegativeSizeError):
        parse_domain(StrNode(alphabet="a"), "-1", "exhaustive")


def test_reversed_size_range_is_a_bounds_error():
    with pytest.raises(BoundsError):
        parse_domain(SetNode(child=IntNode()), "3~1(0)", "exhaustive")


@pytest.mark.parametrize(
    "node,declaration",
    [
        (ListNode(child=IntNode()), "1~2"),
        (ListNode(child=IntNode()), "1(0"),
        (ListNode(child=IntNode()), "1(0))"),
        (DictNode(key=IntNode(), value=IntNode()), "1(0)"),
        (DictNode(key=IntNode(), value=IntNode()), "1(0:1:2)"),
        (IntNode(), "1(2)"),
        (StrNode(alphabet="a"), "1(2)"),
        (IntNode(), "1:2"),
    ],
)
def test_domain_shape_mismatch_fails(node, declaration):
    with pytest.raises(DomainSyntaxError):
        parse_domain(node, declaration, "exhaustive")


def test_empty_child_domain_is_allowed():
    node = parse_domain(ListNode(child=IntNode()), "0~1()", "exhaustive")
    assert node.exhaustive == (0, 1)
    assert node.child.exhaustive == ()


# =============================================================================
# Parallel lists
# =============================================================================


def test_parse_type_domains_builds_one_node_per_parameter():
    nodes = parse_type_domains(["int", "list(bool)"], ["0~1", "1(0)"], ["5", "2(1)"])
    assert nodes == [
        IntNode(exhaustive=[0, 1], random=[5]),
        ListNode(child=BoolNode(exhaustive=[0], random=[1]), exhaustive=[1], random=[2]),
    ]


@pytest.mark.parametrize(
    "types,exhaustive,random",
    [
        (["int"], [], ["1"]),
        (["int"], ["1"], []),
        (["int", "int"], ["1"], ["1", "1"]),
        (["not a type"], ["nonsense", "x"], ["1"]),
    ],
)
def test_length_mismatch_fails_regardless_of_content(types, exhaustive, random):
    with pytest.raises(LengthMismatchError):
        parse_type_domains(types, exhaustive, random)


def test_errors_name_the_parameter():
    with pytest.raises(BoolDomainError, match=r"Parameter 1 \('bool'\)"):
        parse_type_domains(["int", "bool"], ["0", "3"], ["0", "1"])


# =============================================================================
# Documents
# =============================================================================


def test_parse_worked_example():
    config = parse(document())
    assert config == ConfigFile(
        fname="add",
        nodes=[
            IntNode(exhaustive=range(3), random=range(11)),
            IntNode(exhaustive=range(3), random=range(11)),
        ],
        num_random=0,
    )


def test_config_nodes_are_a_tuple():
    assert isinstance(parse(document()).nodes, tuple)


@pytest.mark.parametrize("contents", ["", "{", "not json", "{'fname': 'f'}"])
def test_malformed_document(contents):
    with pytest.raises(MalformedDocumentError):
        parse(contents)


@pytest.mark.parametrize("contents", ["[]", "3", '"add"', "null"])
def test_document_must_be_an_object(contents):
    with pytest.raises(MalformedDocumentError):
        parse(contents)


@pytest.mark.parametrize(
    "key", ["fname", "types", "exhaustive domain", "random domain", "num random"]
)
def test_missing_field(key):
    data = json.loads(document())
    del data[key]
    with pytest.raises(MissingFieldError, match=key):
        parse(json.dumps(data))


def test_unexpected_field():
    data = json.loads(document())
    data["extra"] = 1
    with pytest.raises(UnexpectedFieldError, match="extra"):
        parse(json.dumps(data))


@pytest.mark.parametrize("value", [-1, 1.5, "3", True, None, [1]])
def test_invalid_num_random(value):
    with pytest.raises(InvalidRandomCountError):
        parse(document(num_random=value))


@given(st.integers(0, 10**6))
def test_num_random_accepts_non_negative_integers(n):
    assert parse_num_random(n) == n


@pytest.mark.parametrize("fname", [3, "", "not an identifier", None])
def test_invalid_fname(fname):
    with pytest.raises(MalformedDocumentError):
        parse(document(fname=fname))


@pytest.mark.parametrize("key", ["types", "exhaustive_domain", "random_domain"])
def test_declarations_must_be_string_arrays(key):
    with pytest.raises(MalformedDocumentError):
        parse(document(**{key: [1, 2]}))


def test_document_length_mismatch():
    with pytest.raises(LengthMismatchError):
        parse(document(types=["int"]))


def test_document_with_bad_type():
    with pytest.raises(TypeDeclarationError):
        parse(document(types=["int", "foo"]))


def test_all_errors_are_config_errors():
    for error in [
        MalformedDocumentError,
        MissingFieldError,
        UnexpectedFieldError,
        LengthMismatchError,
        TypeDeclarationError,
        DomainSyntaxError,
        InvalidRandomCountError,
        BoundsError,
        NegativeSizeError,
        BoolDomainError,
    ]:
        assert issubclass(error, InvalidConfigError)


def test_load_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(document(num_random=4))
    config = load_config(str(path))
    assert config.fname == "add"
    assert config.num_random == 4
