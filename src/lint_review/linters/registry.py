import os
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from .parsers import (
    ParseResult,
    Parser,
    parse_golangci_lint,
    parse_luacheck,
    parse_shellcheck,
    parse_staticcheck,
)


ArgsBuilder = Callable[[list[str]], list[str]]


class UnknownLinterError(KeyError):
    """No linter registered under the requested name."""
    pass


def _files_only(files: list[str]) -> list[str]:
    return list(files)


@dataclass(frozen=True)
class LinterSpec:
    name: str
    parser: Parser
    extensions: frozenset[str]
    command: str
    default_args: ArgsBuilder = _files_only
    config_flag: str | None = None

    def matches(self, path: str) -> bool:
        return os.path.splitext(path)[1] in self.extensions

    def matching_files(self, files: Iterable[str]) -> list[str]:
        return [f for f in files if self.matches(f)]


@dataclass
class LinterRegistry:
    """Linters known to the bot, keyed by name.

    Built once at startup and handed to the dispatcher; read-only afterwards.
    """
    _linters: dict[str, LinterSpec] = field(default_factory=dict)

    def register(
        self,
        name: str,
        parser: Parser,
        extensions: Iterable[str],
        *,
        command: str | None = None,
        default_args: ArgsBuilder | None = None,
        config_flag: str | None = None,
    ) -> LinterSpec:
        if name in self._linters:
            raise ValueError(f"Linter already registered: {name}")
        spec = LinterSpec(
            name=name,
            parser=parser,
            extensions=frozenset(
                ext if ext.startswith(".") else f".{ext}" for ext in extensions
            ),
            command=command or name,
            default_args=default_args or _files_only,
            config_flag=config_flag,
        )
        self._linters[name] = spec
        return spec

    def get(self, name: str) -> LinterSpec:
        try:
            return self._linters[name]
        except KeyError:
            raise UnknownLinterError(name) from None

    def parse(self, name: str, output: bytes | str) -> ParseResult:
        return self.get(name).parser(output)

    def names(self) -> list[str]:
        return list(self._linters)

    def __contains__(self, name: object) -> bool:
        return name in self._linters

    def __iter__(self) -> Iterator[LinterSpec]:
        return iter(self._linters.values())

    def __len__(self) -> int:
        return len(self._linters)


def default_registry() -> LinterRegistry:
    """Registry with the built-in linters."""
    registry = LinterRegistry()
    registry.register(
        "luacheck",
        parse_luacheck,
        [".lua"],
        config_flag="--config",
    )
    registry.register(
        "shellcheck",
        parse_shellcheck,
        [".sh"],
        default_args=lambda files: ["-f", "gcc", *files],
        config_flag="--rcfile",
    )
    registry.register(
        "golangci-lint",
        parse_golangci_lint,
        [".go"],
        default_args=lambda files: [
            "run", "--out-format=line-number", "--print-issued-lines=false", "./...",
        ],
        config_flag="--config",
    )
    registry.register(
        "staticcheck",
        parse_staticcheck,
        [".go"],
        default_args=lambda files: ["./..."],
    )
    return registry
