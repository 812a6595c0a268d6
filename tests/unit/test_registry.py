import pytest
from lint_review.linters.parsers import general_parse
from lint_review.linters.registry import LinterRegistry, UnknownLinterError, default_registry


@pytest.mark.unit
def test_register_and_parse():
    registry = LinterRegistry()
    registry.register("mylint", general_parse, ["py", ".pyi"])

    spec = registry.get("mylint")
    findings, unexpected = registry.parse("mylint", b"x.py:1:2: bad\n")

    assert spec.command == "mylint"
    assert spec.extensions == frozenset({".py", ".pyi"})
    assert findings["x.py"][0].message == "bad"
    assert unexpected == []


@pytest.mark.unit
def test_duplicate_registration_rejected():
    registry = LinterRegistry()
    registry.register("mylint", general_parse, [".py"])

    with pytest.raises(ValueError):
        registry.register("mylint", general_parse, [".py"])


@pytest.mark.unit
def test_unknown_linter():
    registry = LinterRegistry()

    with pytest.raises(UnknownLinterError):
        registry.parse("nope", b"")
    assert "nope" not in registry


@pytest.mark.unit
def test_spec_matches_by_extension():
    spec = default_registry().get("luacheck")

    assert spec.matches("nginx/init.lua")
    assert not spec.matches("deploy.sh")
    assert not spec.matches("lua")
    assert spec.matching_files(["a.lua", "b.sh", "c/d.lua"]) == ["a.lua", "c/d.lua"]


@pytest.mark.unit
def test_default_registry_contents():
    registry = default_registry()

    assert registry.names() == ["luacheck", "shellcheck", "golangci-lint", "staticcheck"]
    assert registry.get("shellcheck").default_args(["a.sh"]) == ["-f", "gcc", "a.sh"]
    assert registry.get("golangci-lint").config_flag == "--config"


@pytest.mark.unit
def test_registries_are_independent():
    first = default_registry()
    second = LinterRegistry()

    assert len(first) == 4
    assert len(second) == 0
