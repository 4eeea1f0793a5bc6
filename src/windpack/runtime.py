# src/windpack/runtime.py
"""Run-time support for compiled config units.

A compiled unit builds one ConfigModuleGraph holding every inlined source.
The loader then runs the entry through it; local modules are created on
first import and live only as long as the graph.
"""

from __future__ import annotations

import ast
import importlib
import importlib.util
import inspect
import os
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from types import ModuleType
from typing import Any

from .logs import get_app_logger


def star_import(namespace: dict[str, Any], module: ModuleType) -> None:
    """`from module import *` into `namespace`, honoring __all__."""
    public = getattr(module, "__all__", None)
    if public is None:
        public = [name for name in vars(module) if not name.startswith("_")]
    for name in public:
        namespace[name] = getattr(module, name)


class ConfigModuleGraph:
    """The local modules of one compiled config, plus its external table."""

    def __init__(
        self,
        unit_name: str,
        *,
        entry: str,
        modules: Mapping[str, tuple[str, str]],
        externals: Mapping[str, str | None],
        project_dir: str,
    ) -> None:
        self.unit_name = unit_name
        self.entry = entry
        self.modules = dict(modules)
        self.externals = dict(externals)
        self.project_dir = project_dir
        self._loaded: dict[str, ModuleType] = {}
        # names this graph put into sys.modules
        self._registered: list[str] = []

    # --- helpers injected into every module ---------------------------------

    def _prepare(self, module: ModuleType, key: str, origin: str) -> None:
        module.__file__ = origin
        module.__dict__["__windpack_key__"] = key
        module.__dict__["__windpack_local__"] = self.local
        module.__dict__["__windpack_external__"] = self.external
        module.__dict__["__windpack_from__"] = self.import_from
        module.__dict__["__windpack_star__"] = star_import
        if Path(origin).name == "__init__.py":
            module.__path__ = [str(Path(origin).parent)]  # type: ignore[attr-defined]

    def _register(self, name: str, module: ModuleType) -> None:
        sys.modules[name] = module
        self._registered.append(name)

    # --- local modules --------------------------------------------------------

    def local(self, key: str) -> ModuleType:
        """Return the local module for `key`, executing it on first use.

        A module that is still executing (an import cycle) is returned
        half-initialized, the same way the import system behaves.
        """
        if key in self._loaded:
            return self._loaded[key]

        origin, source = self.modules[key]
        name = f"{self.unit_name}.{key}"
        module = ModuleType(name)
        self._prepare(module, key, origin)
        self._loaded[key] = module
        self._register(name, module)

        code = compile(source, origin, "exec", dont_inherit=True)
        exec(code, module.__dict__)  # noqa: S102
        return module

    def _local_submodule(self, module: ModuleType, name: str) -> ModuleType | None:
        key = module.__dict__.get("__windpack_key__")
        if key is None:
            return None
        for candidate in (f"{key}.{name}", name if key == "__init__" else None):
            if candidate and candidate in self.modules:
                return self.local(candidate)
        return None

    async def run_entry(self, module: ModuleType) -> None:
        """Execute the entry source inside `module`, awaiting top-level awaits."""
        origin, source = self.modules[self.entry]
        self._prepare(module, self.entry, origin)
        self._loaded[self.entry] = module

        code = compile(
            source,
            origin,
            "exec",
            flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
            dont_inherit=True,
        )
        result = eval(code, module.__dict__)  # noqa: S307
        if inspect.iscoroutine(result):
            await result

    # --- external modules -----------------------------------------------------

    def external(
        self,
        specifier: str,
        location: str | None,
        *,
        top: bool = False,
    ) -> ModuleType:
        """Import an external dependency through the host import system.

        Falls back to the location recorded at compile time when the name is
        not importable from here.
        """
        logger = get_app_logger()
        try:
            module = importlib.import_module(specifier)
        except ModuleNotFoundError:
            if location is None or not os.path.isfile(location):
                raise
            logger.debug("Loading %s from %s", specifier, location)
            module = self._load_from_location(specifier, location)

        if top:
            return sys.modules[specifier.split(".", 1)[0]]
        return module

    def _load_from_location(self, specifier: str, location: str) -> ModuleType:
        spec = importlib.util.spec_from_file_location(specifier, location)
        if spec is None or spec.loader is None:
            xmsg = f"No module named {specifier!r} (recorded at {location})"
            raise ModuleNotFoundError(xmsg, name=specifier)
        module = importlib.util.module_from_spec(spec)
        self._register(specifier, module)
        spec.loader.exec_module(module)
        return module

    def import_from(
        self, module: ModuleType, names: tuple[str, ...]
    ) -> tuple[Any, ...]:
        """Resolve `from module import names`, allowing submodules."""
        values: list[Any] = []
        for name in names:
            if hasattr(module, name):
                values.append(getattr(module, name))
                continue
            sub = self._local_submodule(module, name)
            if sub is None and hasattr(module, "__path__"):
                try:
                    sub = importlib.import_module(f"{module.__name__}.{name}")
                except ModuleNotFoundError:
                    sub = None
            if sub is None:
                xmsg = f"cannot import name {name!r} from {module.__name__!r}"
                raise ImportError(xmsg, name=module.__name__)
            values.append(sub)
        return tuple(values)

    # --- lifetime ---------------------------------------------------------------

    @contextmanager
    def session(self) -> Iterator[None]:
        """Make the project importable while the config runs, then forget it.

        Modules loaded from the project directory are dropped afterwards so a
        later load sees fresh files.
        """
        before = set(sys.modules)
        project_dir = self.project_dir
        added_to_sys_path = project_dir not in sys.path
        if added_to_sys_path:
            sys.path.insert(0, project_dir)
        try:
            yield
        finally:
            if added_to_sys_path and project_dir in sys.path:
                sys.path.remove(project_dir)
            for name in self._registered:
                sys.modules.pop(name, None)
            for name in set(sys.modules) - before:
                origin = getattr(sys.modules.get(name), "__file__", None) or ""
                if origin and _is_within(origin, project_dir):
                    sys.modules.pop(name, None)
            self._registered.clear()
            self._loaded.clear()


def _is_within(path: str, directory: str) -> bool:
    try:
        Path(path).resolve().relative_to(Path(directory).resolve())
    except ValueError:
        return False
    return True
