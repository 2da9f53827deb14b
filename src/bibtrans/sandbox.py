"""Execution sandboxes for translator code.

The engine talks to a ``Sandbox`` only through ``eval``/``has``/``get``, so
the isolation mechanism can be swapped without touching the orchestrator.
``RestrictedSandbox`` runs code in-process with a whitelisted set of builtins
and modules, and rejects code that reaches for private or dunder attributes
or for the frame and code objects behind generators, coroutines and
tracebacks. Imported modules are handed out as flat views of their public
functions, classes and constants, so submodules the real module imported
(``json.codecs``, ``urllib.parse.sys``) stay out of reach.
It keeps translators on their capability surface; it does not guard against
resource exhaustion.
"""

from __future__ import annotations

import ast
import builtins
import importlib
import logging
import re
import types
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

from .errors import SecurityError

logger = logging.getLogger(__name__)

SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "bytes", "callable", "chr", "dict", "divmod",
    "enumerate", "filter", "float", "format", "frozenset", "hasattr", "hash",
    "hex", "int", "isinstance", "issubclass", "iter", "len", "list", "map",
    "max", "min", "next", "object", "oct", "ord", "pow", "range", "repr",
    "reversed", "round", "set", "slice", "sorted", "str", "sum", "super",
    "tuple", "zip",
    "Exception", "ValueError", "KeyError", "IndexError", "TypeError",
    "AttributeError", "RuntimeError", "StopIteration", "NotImplementedError",
    "ZeroDivisionError", "LookupError", "ArithmeticError",
    "True", "False", "None",
)

ALLOWED_MODULES = frozenset({
    "re", "json", "math", "string", "datetime", "itertools", "functools",
    "collections", "html", "urllib.parse", "unicodedata",
})

# Attributes that lead from ordinary objects back to interpreter frames,
# their globals, or the class hierarchy.
INTROSPECTION_ATTRS = frozenset({
    "gi_frame", "gi_code", "gi_yieldfrom", "cr_frame", "cr_code", "cr_await",
    "ag_frame", "ag_code", "ag_await", "tb_frame", "tb_next", "f_back",
    "f_globals", "f_locals", "f_builtins", "f_code", "func_globals",
    "func_code", "mro",
})

# Module members that resolve attributes by name at runtime.
_HIDDEN_MEMBERS = {
    "string": frozenset({"Formatter"}),
}

_DUNDER = re.compile(r"__\w+__")


class Sandbox(ABC):
    """An isolated namespace that translator code is evaluated in."""

    def __init__(self, location: str = "http://www.example.com/"):
        self.location = location

    @abstractmethod
    def eval(self, source: str, bindings: Optional[Dict[str, Any]] = None) -> Any:
        """Run ``source``; return the value of a trailing expression, if any."""

    @abstractmethod
    def has(self, name: str) -> bool:
        ...

    @abstractmethod
    def get(self, name: str) -> Any:
        ...

    def call(self, name: str, *args) -> Any:
        return self.get(name)(*args)

    def names(self) -> Iterable[str]:
        return ()


def _module_view(name: str) -> types.SimpleNamespace:
    module = importlib.import_module(name)
    hidden = _HIDDEN_MEMBERS.get(name, frozenset())
    members = {
        attr: value
        for attr, value in vars(module).items()
        if not attr.startswith("_") and attr not in hidden and not isinstance(value, types.ModuleType)
    }
    return types.SimpleNamespace(**members)


def _guarded_import(name, globals=None, locals=None, fromlist=(), level=0):
    if level != 0 or name not in ALLOWED_MODULES:
        raise SecurityError(f"Import of module {name!r} is not allowed")
    view = _module_view(name)
    if fromlist or "." not in name:
        return view
    # "import urllib.parse" binds the top-level package
    parts = name.split(".")
    for part in reversed(parts[1:]):
        view = types.SimpleNamespace(**{part: view})
    return view


class _Validator(ast.NodeVisitor):
    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_") or node.attr in INTROSPECTION_ATTRS:
            raise SecurityError(f"Access to attribute {node.attr!r} is not allowed (line {node.lineno})")
        self.generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> None:
        if isinstance(node.value, str) and _DUNDER.fullmatch(node.value):
            raise SecurityError(f"Use of string {node.value!r} is not allowed (line {node.lineno})")

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            raise SecurityError(f"Use of name {node.id!r} is not allowed (line {node.lineno})")
        self.generic_visit(node)

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            if alias.name not in ALLOWED_MODULES:
                raise SecurityError(f"Import of module {alias.name!r} is not allowed (line {node.lineno})")
        self.generic_visit(node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.level or node.module not in ALLOWED_MODULES:
            raise SecurityError(f"Import from {node.module!r} is not allowed (line {node.lineno})")
        self.generic_visit(node)

    def visit_Global(self, node: ast.Global) -> None:
        for name in node.names:
            if name.startswith("__"):
                raise SecurityError(f"Use of name {name!r} is not allowed (line {node.lineno})")


class RestrictedSandbox(Sandbox):
    def __init__(self, location: str = "http://www.example.com/"):
        super().__init__(location)
        safe = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
        safe["__import__"] = _guarded_import
        safe["__build_class__"] = builtins.__build_class__
        self._namespace: Dict[str, Any] = {
            "__builtins__": safe,
            "__name__": "translator",
        }

    def eval(self, source: str, bindings: Optional[Dict[str, Any]] = None) -> Any:
        tree = ast.parse(source, filename="<translator>", mode="exec")
        _Validator().visit(tree)
        if bindings:
            for name, value in bindings.items():
                if name.startswith("__"):
                    raise SecurityError(f"Cannot bind reserved name {name!r}")
                self._namespace[name] = value

        tail = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            tail = ast.Expression(tree.body.pop().value)
        exec(compile(tree, "<translator>", "exec"), self._namespace)
        if tail is not None:
            return eval(compile(tail, "<translator>", "eval"), self._namespace)
        return None

    def has(self, name: str) -> bool:
        return not name.startswith("__") and callable(self._namespace.get(name))

    def get(self, name: str) -> Any:
        if name.startswith("__"):
            raise SecurityError(f"Cannot read reserved name {name!r}")
        try:
            return self._namespace[name]
        except KeyError:
            raise AttributeError(f"Translator does not define {name!r}") from None

    def names(self) -> Iterable[str]:
        return [n for n in self._namespace if not n.startswith("_")]
