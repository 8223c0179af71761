import pytest

from swift_bridge_generator.models import BridgeModule, RustType
from swift_bridge_generator.type_mapping import (
    BuiltIn,
    BuiltInType,
    MappingConfig,
    Opaque,
    TargetLanguage,
    TypeClassifier,
    UnresolvedTypeError,
)


@pytest.mark.parametrize(
    "rust, swift, c",
    [
        ("u8", "UInt8", "uint8_t"),
        ("i8", "Int8", "int8_t"),
        ("u16", "UInt16", "uint16_t"),
        ("i16", "Int16", "int16_t"),
        ("u32", "UInt32", "uint32_t"),
        ("i32", "Int32", "int32_t"),
        ("u64", "UInt64", "uint64_t"),
        ("i64", "Int64", "int64_t"),
        ("usize", "UInt", "uintptr_t"),
        ("isize", "Int", "intptr_t"),
        ("f32", "Float", "float"),
        ("f64", "Double", "double"),
        ("bool", "Bool", "bool"),
    ],
)
def test_built_in_spellings(rust, swift, c):
    classifier = TypeClassifier()
    ty = RustType.from_spelling(rust)

    assert classifier.classify(ty) == BuiltIn(built_in=BuiltInType.with_type(ty), spelling=swift)
    assert classifier.classify(ty, TargetLanguage.C).spelling == c


def test_qualifiers_do_not_change_classification():
    classifier = TypeClassifier(["Foo"])

    for base, expected in (("u32", BuiltIn(BuiltInType.U32, "UInt32")), ("Foo", Opaque("Foo"))):
        results = {classifier.classify(RustType.from_spelling(s)) for s in (base, f"&{base}", f"&mut {base}")}
        assert results == {expected}


def test_target_from_config():
    classifier = TypeClassifier(config=MappingConfig(target=TargetLanguage.C))

    assert classifier.classify(RustType.from_spelling("u16")).spelling == "uint16_t"
    assert classifier.opaque_spelling() == "void*"
    assert classifier.opaque_spelling(TargetLanguage.SWIFT) == "UnsafeMutableRawPointer"


def test_from_module_and_extra_types():
    module = BridgeModule(name="ffi", opaque_types=["Foo"])
    classifier = TypeClassifier.from_module(module, MappingConfig(extra_opaque_types=frozenset({"Shared"})))

    assert classifier.classify(RustType.from_spelling("&Foo")) == Opaque("Foo")
    assert classifier.classify(RustType.from_spelling("Shared")) == Opaque("Shared")
    with pytest.raises(UnresolvedTypeError) as info:
        classifier.classify(RustType.from_spelling("&mut Other"))
    assert info.value.ty.base == "Other"


def test_built_in_names_are_not_shadowed_by_declarations():
    classifier = TypeClassifier(["u8"])
    assert isinstance(classifier.classify(RustType.from_spelling("u8")), BuiltIn)
