"""Document models for CloudFormation templates.

Only the document structure is modelled; resource properties and other
free-form sections are kept as raw JSON-like values.
"""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class TemplateError(Exception):
    """Error in a template document."""


class _DocumentModel(BaseModel):
    # Unknown keys are kept so they survive a round trip
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ResourceDocument(_DocumentModel):
    type: str = Field(alias="Type")
    properties: dict[str, Any] | None = Field(default=None, alias="Properties")
    depends_on: str | list[str] | None = Field(default=None, alias="DependsOn")
    metadata: dict[str, Any] | None = Field(default=None, alias="Metadata")
    condition: str | None = Field(default=None, alias="Condition")
    deletion_policy: str | None = Field(default=None, alias="DeletionPolicy")
    update_replace_policy: str | None = Field(default=None, alias="UpdateReplacePolicy")
    creation_policy: dict[str, Any] | None = Field(default=None, alias="CreationPolicy")
    update_policy: dict[str, Any] | None = Field(default=None, alias="UpdatePolicy")

    def depends_on_names(self) -> list[str]:
        if self.depends_on is None:
            return []
        if isinstance(self.depends_on, str):
            return [self.depends_on]
        return list(self.depends_on)


# Resource attributes kept outside the property tree, by document key
SIDE_CHANNEL_ATTRIBUTES: dict[str, str] = {
    "Metadata": "metadata",
    "Condition": "condition",
    "DeletionPolicy": "deletion_policy",
    "UpdateReplacePolicy": "update_replace_policy",
    "CreationPolicy": "creation_policy",
    "UpdatePolicy": "update_policy",
}


class ExportDocument(_DocumentModel):
    name: Any = Field(alias="Name")


class OutputDocument(_DocumentModel):
    value: Any = Field(alias="Value")
    export: ExportDocument | None = Field(default=None, alias="Export")
    description: str | None = Field(default=None, alias="Description")
    condition: str | None = Field(default=None, alias="Condition")


class TemplateDocument(_DocumentModel):
    """A CloudFormation template.

    Field aliases are the template's top-level keys, so documents load
    directly from parsed JSON/YAML and dump back with ``to_dict()``.
    """

    format_version: str | None = Field(default=None, alias="AWSTemplateFormatVersion")
    description: str | None = Field(default=None, alias="Description")
    metadata: dict[str, Any] | None = Field(default=None, alias="Metadata")
    transform: Any = Field(default=None, alias="Transform")
    parameters: dict[str, Any] | None = Field(default=None, alias="Parameters")
    rules: dict[str, Any] | None = Field(default=None, alias="Rules")
    mappings: dict[str, Any] | None = Field(default=None, alias="Mappings")
    conditions: dict[str, Any] | None = Field(default=None, alias="Conditions")
    resources: dict[str, ResourceDocument] = Field(default_factory=dict, alias="Resources")
    outputs: dict[str, OutputDocument] | None = Field(default=None, alias="Outputs")

    @classmethod
    def from_dict(cls, data: Any) -> Self:
        """Validate a parsed template.

        Raises:
            TemplateError: If the document structure is invalid.

        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            msg = f"Invalid template: {e}"
            raise TemplateError(msg) from e

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
