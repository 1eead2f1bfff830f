"""thisgen configuration.

Typed configuration for the CLI: the workspace file (``this.yaml``), the
fixed layout of a this-rs API project, and process-level settings read from
the environment.  All models use Pydantic v2 so they are validated at
construction time and serialise to YAML without boiler-plate.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from thisgen.errors import ProjectIOError, ProjectParseError


# ---------------------------------------------------------------------------
# Workspace configuration (this.yaml)
# ---------------------------------------------------------------------------

class TargetType(str, Enum):
    """Deployment target kinds a workspace can declare."""
    WEBAPP = "webapp"
    WEBSITE = "website"
    DESKTOP = "desktop"
    IOS = "ios"
    ANDROID = "android"

    def __str__(self) -> str:
        return self.value


class ApiConfig(BaseModel):
    """Location and port of the API project inside a workspace."""

    path: str = Field(default="api", description="API directory, relative to the workspace")
    port: int = Field(default=3000, ge=1, le=65535)


class TargetConfig(BaseModel):
    """A deployment target (web app, desktop shell, mobile app)."""

    target_type: TargetType
    framework: Optional[str] = Field(default=None, description="Frontend framework, e.g. 'react'")
    runtime: Optional[str] = Field(default=None, description="Runtime, e.g. 'tauri'")
    path: str = Field(..., description="Target directory, relative to the workspace")


class WorkspaceConfig(BaseModel):
    """Root configuration of a workspace, stored in ``this.yaml``."""

    name: str
    api: ApiConfig = Field(default_factory=ApiConfig)
    targets: list[TargetConfig] = Field(default_factory=list)

    def api_root(self, workspace_root: Path) -> Path:
        """Absolute path of the API project."""
        return workspace_root / self.api.path

    def target(self, target_type: TargetType) -> Optional[TargetConfig]:
        """The first target of the given type, if any."""
        for target in self.targets:
            if target.target_type == target_type:
                return target
        return None

    def client_output_path(self, workspace_root: Path) -> Path:
        """Default destination for the generated TypeScript client.

        The first webapp target receives ``src/api-client.ts``; without one
        the client is written next to ``this.yaml``.
        """
        webapp = self.target(TargetType.WEBAPP)
        if webapp is not None:
            return workspace_root / webapp.path / "src" / "api-client.ts"
        return workspace_root / "api-client.ts"


def load_workspace_config(path: Path) -> WorkspaceConfig:
    """Read and validate ``this.yaml``.

    Raises:
        ProjectIOError: The file cannot be read.
        ProjectParseError: The file is not valid YAML or misses required keys.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ProjectIOError(path, f"cannot read workspace config: {exc}") from exc

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise ProjectParseError(path, f"invalid YAML: {exc}") from exc

    try:
        return WorkspaceConfig.model_validate(data)
    except ValidationError as exc:
        raise ProjectParseError(path, f"invalid workspace config: {describe_validation_error(exc)}") from exc


def dump_workspace_config(config: WorkspaceConfig) -> str:
    """Serialise ``config`` as the YAML text of ``this.yaml``; unset keys are omitted."""
    return dump_yaml(config.model_dump(mode="json", exclude_none=True))


def dump_yaml(data: Any) -> str:
    """Serialise ``data`` as block-style YAML, preserving key order."""
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def describe_validation_error(exc: ValidationError) -> str:
    """One-line summary of a pydantic ``ValidationError``."""
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{loc}: {error.get('msg', 'invalid')}" if loc else error.get("msg", "invalid"))
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# API project layout
# ---------------------------------------------------------------------------

class ProjectLayout(BaseModel):
    """Fixed file layout of a this-rs API project.

    All paths are derived from ``root`` (the directory holding ``Cargo.toml``).
    """

    root: Path

    @property
    def cargo_toml_path(self) -> Path:
        return self.root / "Cargo.toml"

    @property
    def src_dir(self) -> Path:
        return self.root / "src"

    @property
    def entities_dir(self) -> Path:
        """Directory containing one sub-directory per entity."""
        return self.src_dir / "entities"

    @property
    def entities_mod_path(self) -> Path:
        """``src/entities/mod.rs``, the ``pub mod`` declaration list."""
        return self.entities_dir / "mod.rs"

    @property
    def module_path(self) -> Path:
        """``src/module.rs``, entity type list and registry wiring."""
        return self.src_dir / "module.rs"

    @property
    def stores_path(self) -> Path:
        """``src/stores.rs``, the store registry."""
        return self.src_dir / "stores.rs"

    @property
    def links_path(self) -> Path:
        """``config/links.yaml``, the relationship manifest."""
        return self.root / "config" / "links.yaml"

    def entity_dir(self, canonical_name: str) -> Path:
        return self.entities_dir / canonical_name


# ---------------------------------------------------------------------------
# Process settings
# ---------------------------------------------------------------------------

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Process-level settings shared by every command."""

    dry_run: bool = Field(default=False, description="Print changes instead of writing them")
    project_root: Optional[Path] = Field(
        default=None, description="Explicit project root; auto-detected when unset"
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional): THIS_DRY_RUN, THIS_PROJECT_ROOT.
        """
        dry_run = os.environ.get("THIS_DRY_RUN", "").strip().lower() in _TRUTHY
        root = os.environ.get("THIS_PROJECT_ROOT")
        return cls(dry_run=dry_run, project_root=Path(root) if root else None)
