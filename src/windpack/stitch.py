# src/windpack/stitch.py
"""Compile a config file and its local imports into one executable unit.

Relative imports are followed and inlined (each file once, cycles allowed).
Every other import is resolved now, with the lookup rules of the config's
module format, and rewritten into a call that imports it at run time, so
installed dependencies are never copied into the unit.

Rewrites keep every statement on its original line, and every inlined
source is compiled later under its own filename, so tracebacks point at the
user's files.
"""

from __future__ import annotations

import ast
import asyncio
import base64
import importlib.machinery
import importlib.util
import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import ConfigCandidate, ModuleFormat, PackageMetadataResolver
from .config.package_data import normalize_dist_name
from .constants import SOURCE_MAP_MARKER
from .errors import ConfigEvaluationError, ResolutionError
from .logs import get_app_logger
from .utils import file_mtime


ENTRY_KEY = "__entry__"
OPTIONAL_IMPORT_HANDLERS = frozenset(
    {"ImportError", "ModuleNotFoundError", "Exception", "BaseException"}
)


@dataclass
class CompiledConfigModule:
    """A self-contained, single-use unit of config code."""

    code: str
    format: ModuleFormat
    entry: Path
    # every inlined local file, entry first
    sources: tuple[Path, ...]
    # external specifier → resolved location (None for optional, missing ones)
    externals: dict[str, str | None] = field(default_factory=dict)
    # local file → mtime seen just before it was read
    mtimes: dict[Path, float | None] = field(default_factory=dict)
    consumed: bool = False


@dataclass
class _ImportSite:
    node: ast.Import | ast.ImportFrom
    optional: bool


# --------------------------------------------------------------------------- #
# import discovery
# --------------------------------------------------------------------------- #


def _is_type_checking_test(test: ast.expr) -> bool:
    if isinstance(test, ast.Name):
        return test.id == "TYPE_CHECKING"
    if isinstance(test, ast.Attribute):
        return test.attr == "TYPE_CHECKING"
    return False


def _handler_names(handler: ast.ExceptHandler) -> set[str]:
    if handler.type is None:
        return {"BaseException"}
    nodes = handler.type.elts if isinstance(handler.type, ast.Tuple) else [handler.type]
    names: set[str] = set()
    for n in nodes:
        if isinstance(n, ast.Name):
            names.add(n.id)
        elif isinstance(n, ast.Attribute):
            names.add(n.attr)
    return names


class _ImportCollector(ast.NodeVisitor):
    """Find every import statement, noting which ones may fail softly."""

    def __init__(self) -> None:
        self.sites: list[_ImportSite] = []
        self._optional = 0

    def visit_Import(self, node: ast.Import) -> None:  # noqa: N802
        self.sites.append(_ImportSite(node, optional=self._optional > 0))

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:  # noqa: N802
        if node.module == "__future__":
            return
        self.sites.append(_ImportSite(node, optional=self._optional > 0))

    def visit_If(self, node: ast.If) -> None:  # noqa: N802
        if _is_type_checking_test(node.test):
            # never executed at runtime
            for child in node.orelse:
                self.visit(child)
            return
        self.generic_visit(node)

    def _visit_try(self, node: ast.Try) -> None:
        guarded = any(
            _handler_names(h) & OPTIONAL_IMPORT_HANDLERS for h in node.handlers
        )
        if guarded:
            self._optional += 1
        for child in node.body:
            self.visit(child)
        if guarded:
            self._optional -= 1
        for child in [*node.handlers, *node.orelse, *node.finalbody]:
            self.visit(child)

    visit_Try = _visit_try  # noqa: N815
    visit_TryStar = _visit_try  # noqa: N815


# --------------------------------------------------------------------------- #
# resolution
# --------------------------------------------------------------------------- #


def _find_local_module(base: Path, dotted: str) -> Path | None:
    """Map a dotted name under `base` to a module file or package __init__."""
    target = base.joinpath(*dotted.split("."))
    module_file = target.parent / f"{target.name}.py"
    if module_file.is_file():
        return module_file.resolve()
    package_init = target / "__init__.py"
    if package_init.is_file():
        return package_init.resolve()
    return None


def _relative_base(importer: Path, level: int) -> Path:
    base = importer.parent
    for _ in range(level - 1):
        base = base.parent
    return base


def _spec_location(spec: importlib.machinery.ModuleSpec) -> str | None:
    if spec.origin and spec.has_location:
        return str(Path(spec.origin).resolve())
    if spec.origin in {"built-in", "frozen"}:
        return spec.origin
    locations = list(spec.submodule_search_locations or [])
    if locations:
        # namespace package
        return str(Path(locations[0]).resolve())
    return spec.origin


def _find_top_level_spec(
    name: str,
    fmt: ModuleFormat,
    project_dir: Path,
) -> importlib.machinery.ModuleSpec | None:
    if fmt == "script":
        # classic lookup: builtins, then plain path search
        if name in sys.builtin_module_names:
            return importlib.machinery.BuiltinImporter.find_spec(name)
        return importlib.machinery.PathFinder.find_spec(
            name, [str(project_dir), *sys.path]
        )

    spec = importlib.machinery.PathFinder.find_spec(name, [str(project_dir)])
    if spec is not None:
        return spec
    try:
        return importlib.util.find_spec(name)
    except (ImportError, ValueError):
        return None


def resolve_external(name: str, fmt: ModuleFormat, project_dir: Path) -> str | None:
    """Return the location `name` resolves to, or None if it cannot be found.

    Dotted names are walked one package at a time; nothing gets imported.
    """
    top, *rest = name.split(".")
    spec = _find_top_level_spec(top, fmt, project_dir)
    if spec is None:
        return None

    fullname = top
    for part in rest:
        fullname = f"{fullname}.{part}"
        locations = spec.submodule_search_locations
        sub = (
            importlib.machinery.PathFinder.find_spec(fullname, list(locations))
            if locations
            else None
        )
        if sub is None:
            # e.g. os.path: set up by the parent instead of found on disk
            loaded = sys.modules.get(fullname)
            sub_spec = getattr(loaded, "__spec__", None)
            if sub_spec is None:
                return None
            sub = sub_spec
        spec = sub

    return _spec_location(spec)


# --------------------------------------------------------------------------- #
# source rewriting
# --------------------------------------------------------------------------- #


def _targets(names: list[str]) -> str:
    joined = ", ".join(names)
    return f"{joined}," if len(names) == 1 else joined


def _char_offset(line: str, byte_offset: int) -> int:
    """AST column offsets count UTF-8 bytes."""
    return len(line.encode("utf-8")[:byte_offset].decode("utf-8", errors="ignore"))


def _splice(lines: list[str], node: ast.stmt, replacement: str) -> None:
    """Replace `node`'s span in-place without changing the line count."""
    start = node.lineno - 1
    end = (node.end_lineno or node.lineno) - 1
    first = lines[start]
    last = lines[end]
    col = _char_offset(first, node.col_offset)
    end_col = _char_offset(last, node.end_col_offset or len(last.encode("utf-8")))

    tail = last[end_col:]
    newline = "\n" if last.endswith("\n") else ""
    if newline:
        tail = tail[: -len(newline)]
    lines[start] = f"{first[:col]}{replacement}{tail}{newline}"
    for i in range(start + 1, end + 1):
        lines[i] = "\n"


class _GraphBuilder:
    """Walks the local import graph of one config file."""

    def __init__(
        self,
        candidate: ConfigCandidate,
        resolver: PackageMetadataResolver,
    ) -> None:
        self.candidate = candidate
        self.resolver = resolver
        self.entry = candidate.path.resolve()
        self.project_dir = self.entry.parent
        self.keys: dict[Path, str] = {}
        self.modules: dict[str, tuple[Path, str]] = {}
        self.externals: dict[str, str | None] = {}
        self.mtimes: dict[Path, float | None] = {}
        self._pending: list[Path] = []

    # --- keys -------------------------------------------------------------

    def _make_key(self, path: Path) -> str:
        if path == self.entry:
            return ENTRY_KEY
        rel = Path(os.path.relpath(path, self.project_dir))
        parts = ["_up" if p == ".." else p for p in rel.with_suffix("").parts]
        if parts and parts[-1] == "__init__" and len(parts) > 1:
            parts.pop()
        key = ".".join(parts)
        # keep keys unique even for odd layouts
        while key in self.modules or key == ENTRY_KEY:
            key = f"{key}_"
        return key

    def register(self, path: Path) -> str:
        path = path.resolve()
        if path not in self.keys:
            key = self._make_key(path)
            self.keys[path] = key
            # placeholder so cycles see the key as taken
            self.modules[key] = (path, "")
            self._pending.append(path)
        return self.keys[path]

    # --- external imports -------------------------------------------------

    def _external(
        self,
        specifier: str,
        importer: Path,
        *,
        optional: bool,
        top: bool = False,
    ) -> str:
        logger = get_app_logger()
        if specifier not in self.externals:
            location = resolve_external(
                specifier, self.candidate.format, self.project_dir
            )
            if location is None and not optional:
                raise ResolutionError(
                    specifier, importer, hint=self._missing_hint(specifier, importer)
                )
            if location is None:
                logger.debug(
                    "Optional import `%s` in %s is not installed", specifier, importer
                )
            else:
                logger.trace("[stitch] external %s → %s", specifier, location)
            self.externals[specifier] = location
        location = self.externals[specifier]
        extra = ", top=True" if top else ""
        return f"__windpack_external__({specifier!r}, {location!r}{extra})"

    def _missing_hint(self, specifier: str, importer: Path) -> str:
        metadata = self.resolver.read_nearest(importer)
        top = normalize_dist_name(specifier.split(".", 1)[0])
        if metadata is not None and top in metadata.dependencies:
            return (
                f"It is declared in {metadata.path} but is not installed"
                " in this environment."
            )
        return "Install it, or check the module name for typos."

    def _rewrite_import(self, node: ast.Import, importer: Path, optional: bool) -> str:
        parts: list[str] = []
        for alias in node.names:
            if alias.asname:
                call = self._external(alias.name, importer, optional=optional)
                parts.append(f"{alias.asname} = {call}")
            else:
                # `import a.b` binds `a`
                call = self._external(
                    alias.name, importer, optional=optional, top="." in alias.name
                )
                parts.append(f"{alias.name.split('.', 1)[0]} = {call}")
        return "; ".join(parts)

    def _rewrite_from_external(
        self, node: ast.ImportFrom, importer: Path, optional: bool
    ) -> str:
        module_expr = self._external(node.module or "", importer, optional=optional)
        return self._bind_from(module_expr, node.names)

    @staticmethod
    def _bind_from(module_expr: str, names: list[ast.alias]) -> str:
        if len(names) == 1 and names[0].name == "*":
            return f"__windpack_star__(globals(), {module_expr})"
        targets = _targets([a.asname or a.name for a in names])
        wanted = tuple(a.name for a in names)
        return f"{targets} = __windpack_from__({module_expr}, {wanted!r})"

    # --- local imports ----------------------------------------------------

    def _rewrite_from_local(self, node: ast.ImportFrom, importer: Path) -> str:
        base = _relative_base(importer, node.level)
        shown = "." * node.level + (node.module or "")

        if node.module:
            target = _find_local_module(base, node.module)
            if target is None:
                raise ResolutionError(shown, importer)
            key = self.register(target)
            if target.name == "__init__.py":
                # `from .pkg import sub` may name a submodule
                for alias in node.names:
                    sub = _find_local_module(target.parent, alias.name)
                    if sub is not None:
                        self.register(sub)
            return self._bind_from(f"__windpack_local__({key!r})", node.names)

        # from . import a, b
        parts: list[str] = []
        package_init = base / "__init__.py"
        for alias in node.names:
            bound = alias.asname or alias.name
            sub = None if alias.name == "*" else _find_local_module(base, alias.name)
            if sub is not None:
                parts.append(f"{bound} = __windpack_local__({self.register(sub)!r})")
            elif package_init.is_file():
                key = self.register(package_init)
                parts.append(
                    self._bind_from(f"__windpack_local__({key!r})", [alias])
                )
            else:
                raise ResolutionError(f"{shown}{alias.name}", importer)
        return "; ".join(parts)

    # --- per-file ---------------------------------------------------------

    def process(self, path: Path) -> None:
        logger = get_app_logger()
        self.mtimes[path] = file_mtime(path)
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigEvaluationError(path, f"cannot read source: {e}") from e

        try:
            tree = ast.parse(source, filename=str(path))
        except SyntaxError as e:
            raise ConfigEvaluationError(
                path,
                f"invalid syntax: {e.msg}",
                location=f"{path}:{e.lineno}",
            ) from e

        collector = _ImportCollector()
        collector.visit(tree)

        lines = source.splitlines(keepends=True)
        rewrites: list[tuple[ast.stmt, str]] = []
        for site in collector.sites:
            node = site.node
            if isinstance(node, ast.ImportFrom) and node.level:
                text = self._rewrite_from_local(node, path)
            elif isinstance(node, ast.ImportFrom):
                text = self._rewrite_from_external(node, path, site.optional)
            else:
                text = self._rewrite_import(node, path, site.optional)
            rewrites.append((node, text))

        for node, text in sorted(
            rewrites, key=lambda r: (r[0].lineno, r[0].col_offset), reverse=True
        ):
            _splice(lines, node, text)

        logger.trace(
            "[stitch] %s: %d import(s) rewritten", path.name, len(rewrites)
        )
        self.modules[self.keys[path]] = (path, "".join(lines))

    def build(self) -> None:
        self.register(self.entry)
        while self._pending:
            self.process(self._pending.pop(0))


# --------------------------------------------------------------------------- #
# output
# --------------------------------------------------------------------------- #


def make_source_map(builder_modules: dict[str, tuple[Path, str]]) -> str:
    payload: dict[str, Any] = {
        "version": 1,
        "entry": ENTRY_KEY,
        "sources": {key: str(path) for key, (path, _) in builder_modules.items()},
        "lines": {
            key: text.count("\n") + 1 for key, (_, text) in builder_modules.items()
        },
    }
    encoded = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    return f"{SOURCE_MAP_MARKER}{encoded}"


def read_source_map(code: str) -> dict[str, Any] | None:
    """Decode the inline source map trailing a compiled unit, if any."""
    for line in reversed(code.splitlines()):
        if line.startswith(SOURCE_MAP_MARKER):
            raw = base64.b64decode(line[len(SOURCE_MAP_MARKER) :])
            data: dict[str, Any] = json.loads(raw)
            return data
    return None


def _render_unit(candidate: ConfigCandidate, builder: _GraphBuilder) -> str:
    out: list[str] = [
        "# windpack compiled config",
        f"# entry: {candidate.path}",
        f"# format: {candidate.format}",
        "import windpack.runtime as __windpack_runtime__",
        "",
        "__windpack_graph__ = __windpack_runtime__.ConfigModuleGraph(",
        "    __name__,",
        f"    entry={ENTRY_KEY!r},",
        "    modules={",
    ]
    for key, (path, text) in builder.modules.items():
        out.append(f"        {key!r}: ({str(path)!r}, {text!r}),")
    out.append("    },")
    out.append("    externals={")
    for specifier, location in builder.externals.items():
        out.append(f"        {specifier!r}: {location!r},")
    out.append("    },")
    out.append(f"    project_dir={str(builder.project_dir)!r},")
    out.append(")")
    out.append(make_source_map(builder.modules))
    return "\n".join(out) + "\n"


def stitch_config(
    candidate: ConfigCandidate,
    *,
    resolver: PackageMetadataResolver | None = None,
) -> CompiledConfigModule:
    """Build the single executable unit for `candidate`.

    Raises:
        ResolutionError: an import could not be resolved (no partial output)
        ConfigEvaluationError: a file in the graph could not be read or parsed
    """
    logger = get_app_logger()
    builder = _GraphBuilder(candidate, resolver or PackageMetadataResolver())
    builder.build()

    code = _render_unit(candidate, builder)
    sources = tuple(path for path, _ in builder.modules.values())
    logger.debug(
        "Compiled %s: %d local module(s), %d external(s)",
        candidate.path.name,
        len(sources),
        len(builder.externals),
    )
    return CompiledConfigModule(
        code=code,
        format=candidate.format,
        entry=candidate.path,
        sources=sources,
        externals=dict(builder.externals),
        mtimes=dict(builder.mtimes),
    )


async def compile_config(
    candidate: ConfigCandidate,
    *,
    resolver: PackageMetadataResolver | None = None,
) -> CompiledConfigModule:
    """Asynchronous front for stitch_config; the work runs in a thread."""
    return await asyncio.to_thread(stitch_config, candidate, resolver=resolver)
