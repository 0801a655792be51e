from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import yaml

from ._template import StackSet, TemplateDocument, TemplateError, parse_stacks

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

type TemplateFormat = Literal["json", "yaml"]

_SUFFIX_FORMATS: dict[str, TemplateFormat] = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".template": "yaml",
}


# =============================================================================
# YAML with CloudFormation short-form tags
# =============================================================================


class _TemplateLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!Ref``, ``!GetAtt``, ``!Sub``, ... tags."""


def _construct_intrinsic(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> dict[str, Any]:
    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    match tag_suffix:
        case "Ref" | "Condition":
            return {tag_suffix: value}
        case "GetAtt" if isinstance(value, str):
            return {"Fn::GetAtt": value.split(".", 1)}
        case _:
            return {f"Fn::{tag_suffix}": value}


def _construct_timestamp_as_string(loader: yaml.SafeLoader, node: yaml.Node) -> str:
    # AWSTemplateFormatVersion: 2010-09-09 must stay a string
    return loader.construct_scalar(node)


_TemplateLoader.add_multi_constructor("!", _construct_intrinsic)
_TemplateLoader.add_constructor("tag:yaml.org,2002:timestamp", _construct_timestamp_as_string)


# =============================================================================
# Reading and writing templates
# =============================================================================


def detect_format(path: Path) -> TemplateFormat:
    """Guess a template's format from its file suffix (YAML if unknown)."""
    return _SUFFIX_FORMATS.get(path.suffix.lower(), "yaml")


def parse_template_text(text: str, fmt: TemplateFormat = "yaml") -> TemplateDocument:
    """Parse template text (JSON or YAML) into a TemplateDocument.

    Raises:
        TemplateError: If the text cannot be parsed or is not a valid template.

    """
    try:
        data = json.loads(text) if fmt == "json" else yaml.load(text, Loader=_TemplateLoader)  # noqa: S506
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Cannot parse {fmt.upper()} template: {e}"
        raise TemplateError(msg) from e
    return TemplateDocument.from_dict(data)


def load_template(path: Path | str) -> TemplateDocument:
    """Load a template from a JSON or YAML file.

    Raises:
        TemplateError: If the file cannot be read or is not a valid template.

    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read template {path}: {e}"
        raise TemplateError(msg) from e

    document = parse_template_text(text, detect_format(path))
    logger.debug(f"Loaded template {path} ({len(document.resources)} resources)")
    return document


def load_stacks(paths: Mapping[str, Path | str]) -> StackSet:
    """Load and parse the templates of several stacks.

    Args:
        paths: Mapping from stack name to template file.

    """
    return parse_stacks({group: load_template(path) for group, path in paths.items()})


def dump_template_text(document: TemplateDocument, fmt: TemplateFormat = "yaml") -> str:
    data = document.to_dict()
    if fmt == "json":
        return json.dumps(data, indent=2) + "\n"
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def dump_template(document: TemplateDocument, path: Path | str, fmt: TemplateFormat | None = None) -> None:
    """Write a template, in ``fmt`` or the format implied by the file suffix."""
    path = Path(path)
    text = dump_template_text(document, fmt or detect_format(path))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.debug(f"Wrote template {path}")


def write_templates(
    documents: Mapping[str, TemplateDocument],
    directory: Path | str,
    fmt: TemplateFormat = "yaml",
) -> list[Path]:
    """Write each stack's template to ``<directory>/<stack>.<fmt>``.

    Returns:
        The written paths, in stack order.

    """
    directory = Path(directory)
    written: list[Path] = []
    for group, document in documents.items():
        path = directory / f"{group}.{fmt}"
        dump_template(document, path, fmt)
        written.append(path)
    return written
