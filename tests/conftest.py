import pytest

from swift_bridge_generator.models import BridgeModule
from swift_bridge_generator.parsing.bridge_parser import parse_bridge_module
from swift_bridge_generator.signature_transform import SignatureTransformer
from swift_bridge_generator.type_mapping import TypeClassifier


def bridge_source(items: str) -> str:
    return f"""
#[swift_bridge::bridge]
mod ffi {{
    extern "Rust" {{
{items}
    }}
}}
"""


@pytest.fixture
def parse_ok():
    """Parse the items of a single extern "Rust" block into a BridgeModule."""

    def parse(items: str) -> BridgeModule:
        return parse_bridge_module(bridge_source(items))

    return parse


@pytest.fixture
def transformer_for():
    def make(module: BridgeModule) -> SignatureTransformer:
        return SignatureTransformer(TypeClassifier.from_module(module))

    return make

