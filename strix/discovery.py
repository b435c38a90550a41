"""
Module discovery.

Imports every module of the given packages so their decorators run, and
returns the classes those modules define. Import failures are reported
through a callback and the log; strict mode turns them into a
``DiscoveryError``.
"""

import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import Callable, Iterable, List, Optional, Set, Tuple, Union

from .faults.domains import DiscoveryError


logger = logging.getLogger("strix.discovery")

ImportErrorHook = Callable[[str, BaseException], None]

_SKIPPED_NAMES = frozenset({"test", "tests", "conftest"})


def _is_test_module(part: str) -> bool:
    return part in _SKIPPED_NAMES or part.startswith("test_") or part.endswith("_test")


def _is_skipped(name: str, root: str) -> bool:
    relative = name[len(root):].lstrip(".")
    return any(_is_test_module(part) for part in relative.split(".") if part)


class ModuleDiscovery:
    """
    Recursive package importer.

    Example:
        discovery = ModuleDiscovery(strict=True)
        classes = discovery.discover(["myapp.controllers", "myapp.services"])
    """

    def __init__(self, *, strict: bool = False, on_import_error: Optional[ImportErrorHook] = None):
        self.strict = strict
        self.on_import_error = on_import_error
        self.failures: List[Tuple[str, BaseException]] = []
        self.modules: List[str] = []

    def discover(self, packages: Iterable[str]) -> List[type]:
        """
        Import ``packages`` recursively and collect their classes.

        Raises:
            DiscoveryError: In strict mode, when any module failed to import
        """
        discovered: List[type] = []
        seen: Set[str] = set()

        for package_name in packages:
            module = self._import(package_name)
            if module is None:
                continue
            self._collect(module, discovered, seen)

            if not hasattr(module, "__path__"):
                continue

            for _, name, _ in pkgutil.walk_packages(
                module.__path__,
                module.__name__ + ".",
                onerror=self._record_walk_error,
            ):
                if name in seen or _is_skipped(name, package_name):
                    continue
                submodule = self._import(name)
                if submodule is not None:
                    self._collect(submodule, discovered, seen)

        if self.failures:
            logger.warning("Discovery finished with %d import failure(s)", len(self.failures))
            if self.strict:
                raise DiscoveryError(self.failures)

        logger.debug("Discovered %d class(es) in %d module(s)", len(discovered), len(self.modules))
        return discovered

    def _import(self, name: str) -> Optional[ModuleType]:
        try:
            return importlib.import_module(name)
        except Exception as exc:
            self._record(name, exc)
            return None

    def _record_walk_error(self, name: str) -> None:
        # walk_packages only reports the name; re-import to recover the error.
        try:
            importlib.import_module(name)
        except Exception as exc:
            self._record(name, exc)

    def _record(self, name: str, exc: BaseException) -> None:
        if any(failed == name for failed, _ in self.failures):
            return
        self.failures.append((name, exc))
        logger.warning("Failed to import %s: %s", name, exc)
        if self.on_import_error is not None:
            self.on_import_error(name, exc)

    def _collect(self, module: ModuleType, discovered: List[type], seen: Set[str]) -> None:
        seen.add(module.__name__)
        self.modules.append(module.__name__)
        for _, obj in inspect.getmembers(module, inspect.isclass):
            # Only classes defined here, not re-exports
            if obj.__module__ == module.__name__ and obj not in discovered:
                discovered.append(obj)


def discover_modules(
    packages: Union[str, Iterable[str]],
    *,
    strict: bool = False,
    on_import_error: Optional[ImportErrorHook] = None,
) -> List[type]:
    """
    Import every module of ``packages`` and return the classes they define.

    Args:
        packages: Dotted package name(s); test modules are skipped
        strict: Raise ``DiscoveryError`` listing every failed import
        on_import_error: Called with (module_name, exception) per failure
    """
    if isinstance(packages, str):
        packages = [packages]
    return ModuleDiscovery(strict=strict, on_import_error=on_import_error).discover(packages)
