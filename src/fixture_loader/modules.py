"""Module listing: which application modules exist and what they depend on."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import FixtureError, ParseError


class ModuleSpec(BaseModel):
    name: str
    version: Optional[str] = None
    installedVersion: Optional[str] = None
    installed: bool = False
    removable: bool = False
    depends: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class ModuleManifest(BaseModel):
    modules: List[ModuleSpec] = Field(default_factory=list)


class Module:
    def __init__(
        self,
        name: str,
        version: Optional[str] = None,
        installed_version: Optional[str] = None,
        installed: bool = False,
        removable: bool = False,
    ) -> None:
        self.name = name
        self.version = version
        self.installed_version = installed_version
        self.installed = installed
        self.removable = removable
        self.depends: List[Module] = []
        self._pattern: Optional[re.Pattern] = None

    @classmethod
    def from_spec(cls, spec: ModuleSpec) -> "Module":
        return cls(
            spec.name,
            version=spec.version,
            installed_version=spec.installedVersion,
            installed=spec.installed,
            removable=spec.removable,
        )

    @property
    def is_upgradable(self) -> bool:
        return self.installed and self.version != self.installed_version

    def depends_on(self, module: "Module") -> None:
        if module not in self.depends:
            self.depends.append(module)

    def has_entity(self, entity_type: type) -> bool:
        """Whether ``entity_type`` lives in this module's ``db`` or ``models`` package."""
        if self._pattern is None:
            short = self.name.split("-", 1)[-1]
            self._pattern = re.compile(
                rf"(^|\.){re.escape(short)}\.(db|models)(\.|$)"
            )
        return self._pattern.search(entity_type.__module__) is not None

    def pprint(self, depth: int = 1) -> str:
        lines = [self.name + "\n"]
        for dep in self.depends:
            lines.append("  " * depth + "-> " + dep.pprint(depth + 1))
        return "".join(lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Module):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash((Module.__name__, self.name))

    def __repr__(self) -> str:
        return f"Module(name={self.name!r}, version={self.version!r})"


def build_modules(specs: List[ModuleSpec]) -> Dict[str, Module]:
    modules = {spec.name: Module.from_spec(spec) for spec in specs}
    for spec in specs:
        module = modules[spec.name]
        for dep_name in spec.depends:
            dep = modules.get(dep_name)
            if dep is None:
                raise FixtureError(
                    f"Module {spec.name} depends on unknown module {dep_name}"
                )
            module.depends_on(dep)
    return modules


def load_modules(path: Path) -> Dict[str, Module]:
    """Read a YAML manifest with a top-level ``modules`` list."""
    with Path(path).open("r", encoding="utf-8") as fh:
        try:
            payload = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ParseError(f"Malformed module manifest {path}: {exc}") from exc
    try:
        manifest = ModuleManifest.model_validate(payload)
    except ValidationError as exc:
        raise ParseError(f"Invalid module manifest {path}: {exc}") from exc
    return build_modules(manifest.modules)
