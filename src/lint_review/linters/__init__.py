from .dispatcher import Dispatcher, LinterRun
from .parsers import general_parse, parse_line
from .registry import LinterRegistry, LinterSpec, UnknownLinterError, default_registry
from .runner import ExecResult, ExecutionError, exec_run

__all__ = [
    "Dispatcher",
    "LinterRun",
    "general_parse",
    "parse_line",
    "LinterRegistry",
    "LinterSpec",
    "UnknownLinterError",
    "default_registry",
    "ExecResult",
    "ExecutionError",
    "exec_run",
]
