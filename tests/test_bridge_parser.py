import logging

import pytest

from swift_bridge_generator.models import NamedParameter, Receiver, ReceiverKind, RefKind, RustType
from swift_bridge_generator.parsing.bridge_parser import (
    BridgeParseError,
    collect_modules_from_files,
    parse_bridge_module,
    parse_bridge_modules,
    parse_function,
    parse_parameter,
)

SOURCE = """
#[swift_bridge::bridge]
mod ffi {
    extern "Rust" {
        // A counter living on the Rust side.
        type Counter;

        #[swift_bridge(init)]
        fn new(start: u32) -> Counter;
        fn increment(&mut self, by: u32);
        /* read-only */
        fn value(&self) -> u32;
        fn merge(self: &mut Counter, other: &Counter);
    }

    extern "Swift" {
        fn log(msg: u8);
    }
}
"""


@pytest.mark.parametrize(
    "text, expected",
    [
        ("self", Receiver(ReceiverKind.BY_VALUE)),
        ("mut self", Receiver(ReceiverKind.BY_VALUE)),
        ("&self", Receiver(ReceiverKind.BY_REF)),
        ("& 'a self", Receiver(ReceiverKind.BY_REF)),
        ("&mut self", Receiver(ReceiverKind.BY_MUT_REF)),
        ("self: &mut Foo", NamedParameter("self", RustType("Foo", RefKind.MUT_REF))),
        ("mut count: u8", NamedParameter("count", RustType("u8"))),
        ("other: &'a Foo", NamedParameter("other", RustType("Foo", RefKind.SHARED_REF))),
    ],
)
def test_parse_parameter(text, expected):
    assert parse_parameter(text) == expected


def test_parse_module():
    module = parse_bridge_module(SOURCE)

    assert module.name == "ffi"
    assert module.opaque_types == ["Counter"]
    assert [f.name for f in module.functions] == ["new", "increment", "value", "merge"]
    assert [f.host_type for f in module.functions] == [None, "Counter", "Counter", "Counter"]

    new = module.functions[0]
    assert new.signature.parameters == (NamedParameter("start", RustType("u32")),)
    assert new.signature.return_type == RustType("Counter")
    assert module.functions[1].signature.return_type is None


def test_swift_blocks_are_skipped(caplog):
    with caplog.at_level(logging.WARNING, logger="swift_bridge_generator"):
        module = parse_bridge_module(SOURCE)

    assert "log" not in [f.name for f in module.functions]
    assert 'extern "Swift"' in caplog.text


def test_source_without_module_uses_file_name(tmp_path):
    path = tmp_path / "shapes.rs"
    module = parse_bridge_module('extern "Rust" { type Shape; fn area(&self) -> f64; }', path)

    assert module.name == "shapes"
    assert module.source_path == path
    assert module.functions[0].host_type == "Shape"


def test_unit_return_is_no_return():
    fn = parse_function("fn reset() -> ( )")
    assert fn.signature.return_type is None


def test_pub_and_trailing_comma():
    fn = parse_function("pub fn add(a: i32, b: i32,) -> i32")
    assert [p.name for p in fn.signature.parameters] == ["a", "b"]


def test_typed_self_sets_host_type():
    fn = parse_function("fn consume(self: Shape)", block_types=["Foo", "Shape"])
    assert fn.host_type == "Shape"


@pytest.mark.parametrize(
    "text, message",
    [
        ("fn first<T>(items: T) -> T", "Generic function"),
        ("fn boxed(value: Box<Foo>)", "Generic parameter type"),
        ("fn boxed() -> Option<Foo>", "Generic return type"),
        ("fn printf(fmt: u8, ...)", "Variadic"),
        ("fn size(&self) -> usize", "Cannot tell which type"),
        ("fn broken(a: u8", "Unterminated parameter list"),
        ("fn spaced(a b: u8)", "Unsupported parameter pattern"),
        ("fn anon(u8)", "Expected 'name: Type'"),
        ("static COUNT: u8", "Unsupported item"),
        ("fn f() where T: Copy", "Unexpected"),
    ],
)
def test_parse_errors(text, message):
    with pytest.raises(BridgeParseError, match=message):
        parse_function(text, block_types=["Foo", "Bar"])


def test_unterminated_blocks():
    with pytest.raises(BridgeParseError, match="Unterminated module"):
        parse_bridge_module("mod ffi { extern \"Rust\" { type Foo; }")
    with pytest.raises(BridgeParseError, match="Unterminated extern"):
        parse_bridge_module('extern "Rust" { type Foo;')


def test_collect_modules_from_files(tmp_path):
    first = tmp_path / "a.rs"
    second = tmp_path / "b.rs"
    first.write_text(SOURCE)
    second.write_text('#[swift_bridge::bridge]\nmod other { extern "Rust" { fn ping() -> bool; } }')
    plain = tmp_path / "main.rs"
    plain.write_text("mod helpers { pub fn twice(x: u8) -> u8 { x * 2 } }\nfn main() {}\n")

    modules = collect_modules_from_files([first, plain, second])

    assert [m.name for m in modules] == ["ffi", "other"]
    assert modules[1].opaque_types == []


def test_parse_error_reports_path(tmp_path):
    path = tmp_path / "bad.rs"
    path.write_text('#[swift_bridge::bridge]\nmod ffi { extern "Rust" { fn f<T>(); } }')

    with pytest.raises(BridgeParseError) as info:
        collect_modules_from_files([path])
    assert info.value.path == path
    assert str(path) in str(info.value)


def test_bridge_module_is_found_after_other_modules():
    source = """
mod helpers {
    pub fn twice(x: u8) -> u8 { x * 2 }
}

#[swift_bridge::bridge]
mod ffi {
    extern "Rust" {
        type Foo;
        fn make() -> Foo;
    }
}
"""
    module = parse_bridge_module(source)

    assert module.name == "ffi"
    assert module.opaque_types == ["Foo"]
    assert [f.name for f in module.functions] == ["make"]


def test_bridge_attribute_with_arguments_and_pub_mod():
    source = """
#[swift_bridge::bridge(swift_repr = "struct")]
#[allow(dead_code)]
pub(crate) mod api {
    extern "Rust" { fn ping() -> bool; }
}
"""
    assert [m.name for m in parse_bridge_modules(source)] == ["api"]


def test_sources_without_bridge_module():
    assert parse_bridge_modules("mod helpers { pub fn twice(x: u8) -> u8 { x * 2 } }") == []
    assert parse_bridge_modules("fn main() {}") == []


def test_several_bridge_modules_in_one_file():
    source = """
#[swift_bridge::bridge]
mod first { extern "Rust" { fn a(); } }
mod plain { fn b() {} }
#[swift_bridge::bridge]
mod second { extern "Rust" { fn c(); } }
"""
    assert [m.name for m in parse_bridge_modules(source)] == ["first", "second"]


def test_comment_markers_inside_strings_are_kept():
    module = parse_bridge_module("""
#[swift_bridge::bridge]
mod ffi {
    extern "Rust" {
        #[doc = "see http://example.com/docs; and ] too"]
        type Foo; // trailing comment
        /* outer /* nested */ still a comment; fn hidden(); */
        #[swift_bridge(swift_name = "make{")]
        fn make() -> Foo;
    }
}
""")

    assert module.opaque_types == ["Foo"]
    assert [f.name for f in module.functions] == ["make"]
