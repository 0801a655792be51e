"""Configuration loading from pyproject.toml and relocation plan files."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, cast

from stackgraph._ids import NodeId


class ConfigError(Exception):
    """Error in stackgraph configuration."""


@dataclass(slots=True, frozen=True)
class StackgraphConfig:
    """Configuration loaded from pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    stacks: dict[str, Path] = field(default_factory=dict)
    output: Path | None = None
    format: Literal["json", "yaml"] | None = None
    project_root: Path | None = None


@dataclass(slots=True, frozen=True)
class Move:
    """One relocation of a relocation plan."""

    source: NodeId
    destination: NodeId


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _resolve(value: str, project_root: Path) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = project_root / path
    return path


def _parse_stacks(value: object, project_root: Path) -> dict[str, Path]:
    if not isinstance(value, dict):
        msg = "Invalid [tool.stackgraph].stacks: expected a table of stack name -> template path"
        raise ConfigError(msg)

    stacks: dict[str, Path] = {}
    for name, path_value in cast("dict[str, object]", value).items():
        if not isinstance(path_value, str):
            msg = f"Invalid [tool.stackgraph].stacks.{name}: expected string path"
            raise ConfigError(msg)
        stacks[name] = _resolve(path_value, project_root)
    return stacks


def load_config(pyproject_path: Path) -> StackgraphConfig:
    """Load and validate [tool.stackgraph] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed StackgraphConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("stackgraph", {})
    if not section:
        # No [tool.stackgraph] section - return empty config
        return StackgraphConfig(project_root=project_root)

    stacks: dict[str, Path] = {}
    if "stacks" in section:
        stacks = _parse_stacks(section["stacks"], project_root)

    output_path: Path | None = None
    if "output" in section:
        output_value = section["output"]
        if not isinstance(output_value, str):
            msg = "Invalid [tool.stackgraph].output: expected string path"
            raise ConfigError(msg)
        output_path = _resolve(output_value, project_root)

    fmt: Literal["json", "yaml"] | None = None
    if "format" in section:
        format_value = section["format"]
        if format_value not in ("json", "yaml"):
            msg = f"Invalid [tool.stackgraph].format: expected 'json' or 'yaml', got {format_value!r}"
            raise ConfigError(msg)
        fmt = format_value

    return StackgraphConfig(
        stacks=stacks,
        output=output_path,
        format=fmt,
        project_root=project_root,
    )


def get_config() -> StackgraphConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        StackgraphConfig (may be empty if no pyproject.toml or no [tool.stackgraph] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return StackgraphConfig()
    return load_config(pyproject_path)


def parse_stack_argument(argument: str) -> tuple[str, Path]:
    """Parse a ``STACK=PATH`` command line argument.

    A bare path names the stack after the file stem.
    """
    name, sep, path = argument.partition("=")
    if not sep:
        path_obj = Path(argument)
        return path_obj.stem, path_obj
    if not name or not path:
        msg = f"Invalid stack argument '{argument}'. Expected format: 'STACK=PATH'"
        raise ConfigError(msg)
    return name, Path(path)


def parse_move_argument(argument: str) -> Move:
    """Parse a ``group::name=group::name`` command line argument."""
    source, sep, destination = argument.partition("=")
    if not sep:
        msg = f"Invalid move '{argument}'. Expected format: 'stack::Name=stack::Name'"
        raise ConfigError(msg)
    try:
        return Move(source=NodeId.parse(source), destination=NodeId.parse(destination))
    except ValueError as e:
        raise ConfigError(str(e)) from e


def load_move_plan(plan_path: Path) -> list[Move]:
    """Load a relocation plan.

    The plan is a TOML file with one ``[[move]]`` table per relocation::

        [[move]]
        from = "infra::Subscription"
        to = "services::Subscription"

    Raises:
        ConfigError: If the plan is invalid

    """
    with plan_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {plan_path}: {e}"
            raise ConfigError(msg) from e

    entries = data.get("move", [])
    if not isinstance(entries, list):
        msg = f"Invalid plan {plan_path}: 'move' must be an array of tables"
        raise ConfigError(msg)

    moves: list[Move] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not isinstance(entry.get("from"), str) or not isinstance(entry.get("to"), str):
            msg = f"Invalid plan {plan_path}: move #{index + 1} needs string 'from' and 'to'"
            raise ConfigError(msg)
        try:
            moves.append(Move(source=NodeId.parse(entry["from"]), destination=NodeId.parse(entry["to"])))
        except ValueError as e:
            msg = f"Invalid plan {plan_path}: move #{index + 1}: {e}"
            raise ConfigError(msg) from e
    return moves
