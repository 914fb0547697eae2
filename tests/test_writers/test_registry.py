"""Tests for looking up output writers by name."""

import json

import pytest

import bridgekit.writers as writers
from bridgekit.api import Api, ApiKind, Bridge, FunctionDetail, QualifiedName
from bridgekit.writers import WriterBackend, get_writer, list_writers, register_writer


class EchoWriter:
    """Writes the module name, prefixed by a configurable marker."""

    def __init__(self, marker: str = "") -> None:
        self.marker = marker

    def write(self, bridge: Bridge) -> str:
        return f"{self.marker}{bridge.module_name}"

    @property
    def name(self) -> str:
        return "echo"

    @property
    def format_description(self) -> str:
        return "module name only"


@pytest.fixture
def empty_registry(monkeypatch):
    monkeypatch.setattr(writers, "_writers", {})
    monkeypatch.setattr(writers, "_default", None)
    monkeypatch.setattr(writers, "_builtins_imported", True)


@pytest.fixture
def answer_bridge():
    api = Api(QualifiedName((), "get_answer"), ApiKind.FUNCTION, FunctionDetail((), "i32"))
    return Bridge(module_name="bindings", include_list=["answer.h"], apis=[api])


@pytest.mark.usefixtures("empty_registry")
class TestRegistration:
    def test_first_writer_is_default(self, answer_bridge):
        register_writer("echo", EchoWriter)
        register_writer("other", EchoWriter)
        assert get_writer().write(answer_bridge) == "bindings"

    def test_explicit_default_wins(self):
        register_writer("echo", EchoWriter)
        register_writer("loud", EchoWriter, is_default=True)
        assert writers._default == "loud"

    def test_options_reach_constructor(self, answer_bridge):
        register_writer("echo", EchoWriter)
        assert get_writer("echo", marker="> ").write(answer_bridge) == "> bindings"

    def test_names_keep_registration_order(self):
        register_writer("zeta", EchoWriter)
        register_writer("alpha", EchoWriter)
        assert list_writers() == ["zeta", "alpha"]

    def test_name_taken(self):
        register_writer("echo", EchoWriter)
        with pytest.raises(ValueError, match="already registered"):
            register_writer("echo", EchoWriter)

    def test_unknown_name_lists_available(self):
        register_writer("echo", EchoWriter)
        with pytest.raises(ValueError, match="Available: echo"):
            get_writer("fortran")

    def test_empty_registry_has_no_default(self):
        with pytest.raises(ValueError, match=r"\(none\)"):
            get_writer()


class TestBuiltinWriters:
    def test_cxx_and_json_available(self):
        assert list_writers()[:2] == ["cxx", "json"]

    def test_cxx_is_default(self):
        assert get_writer().name == "cxx"

    @pytest.mark.parametrize("name", ["cxx", "json"])
    def test_satisfies_protocol(self, name):
        assert isinstance(get_writer(name), WriterBackend)

    def test_cxx_output(self, answer_bridge):
        output = get_writer("cxx").write(answer_bridge)
        assert 'include!("answer.h");' in output
        assert "fn get_answer() -> i32;" in output

    def test_json_output(self, answer_bridge):
        data = json.loads(get_writer("json").write(answer_bridge))
        assert data["module"] == "bindings"
        assert [(a["name"], a["kind"]) for a in data["apis"]] == [("get_answer", "function")]
