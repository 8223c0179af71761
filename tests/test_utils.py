import io
import logging

import pytest

from swift_bridge_generator.utils import (
    TemplateRenderer,
    atomic_write_text,
    configure_logging,
    include_guard,
    normalize_newlines,
    swift_string_literal,
    write_text,
)


@pytest.fixture
def saved_logging():
    root = logging.getLogger()
    pkg = logging.getLogger("swift_bridge_generator")
    handlers, level, pkg_level = list(root.handlers), root.level, pkg.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        if h not in handlers:
            h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    pkg.setLevel(pkg_level)


def test_configure_logging_uses_format_and_level(saved_logging):
    stream = io.StringIO()
    configure_logging("warning", fmt="%(name)s|%(message)s", stream=stream)

    logging.getLogger("swift_bridge_generator.parsing").info("hidden")
    logging.getLogger("swift_bridge_generator.parsing").warning("shown")

    assert stream.getvalue() == "swift_bridge_generator.parsing|shown\n"
    assert logging.getLogger("swift_bridge_generator").level == logging.WARNING


def test_configure_logging_writes_log_file(saved_logging, tmp_path):
    log_file = tmp_path / "gen.log"
    configure_logging(logging.DEBUG, to_file=log_file, stream=io.StringIO())

    logging.getLogger("swift_bridge_generator").debug("details")
    for h in logging.getLogger().handlers:
        h.flush()

    assert "DEBUG: details" in log_file.read_text()


def test_swift_string_literal_escapes_quotes_and_backslashes():
    assert swift_string_literal("__swift_bridge__$Foo$new") == '"__swift_bridge__$Foo$new"'
    assert swift_string_literal('a"b\\c') == '"a\\"b\\\\c"'


def test_include_guard():
    assert include_guard("ffi") == "SWIFT_BRIDGE_FFI_H"
    assert include_guard("my-ffi") == "SWIFT_BRIDGE_MY_FFI_H"


def test_atomic_write_is_idempotent(tmp_path):
    target = tmp_path / "out" / "ffi.swift"

    assert atomic_write_text(target, "a\r\nb\n") is True
    assert target.read_text() == "a\nb\n"
    assert atomic_write_text(target, "a\nb\n") is False
    assert atomic_write_text(target, "changed\n") is True
    assert target.read_text() == "changed\n"
    assert [p.name for p in target.parent.iterdir()] == ["ffi.swift"]


def test_write_text_dry_run_does_not_touch_disk(tmp_path):
    target = tmp_path / "ffi.swift"
    assert write_text(target, "x", dry_run=True) is False
    assert not target.exists()


def test_normalize_newlines():
    assert normalize_newlines("a\r\nb\rc\n") == "a\nb\nc\n"


def test_renderer_prefers_user_templates(tmp_path):
    (tmp_path / "c_header.h.j2").write_text("custom {{ module.name }}")
    renderer = TemplateRenderer(tmp_path)

    assert renderer.render("c_header.h.j2", {"module": {"name": "ffi"}}) == "custom ffi"
    # Templates missing from the user directory fall back to the packaged ones.
    assert "extension" in renderer.env.loader.get_source(renderer.env, "swift_module.swift.j2")[0]


def test_renderer_missing_template(tmp_path):
    renderer = TemplateRenderer(None)
    with pytest.raises(RuntimeError, match="Template not found"):
        renderer.render("nope.j2", {})
