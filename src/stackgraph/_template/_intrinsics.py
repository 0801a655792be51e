"""Conversion between raw template values and property trees.

Raw values are what a JSON/YAML parser produces. Decoding recognizes the
reference intrinsics once:

- ``{"Ref": "Name"}`` -> ``Ref("Name")``
- ``{"Fn::GetAtt": ["Name", "Attr"]}`` or ``{"Fn::GetAtt": "Name.Attr"}`` -> ``Ref("Name", "Attr")``
- ``{"Fn::ImportValue": "Export"}`` -> ``ImportValue("Export")``

Encoding turns them back into the long-form intrinsics.
"""

from typing import Any

from stackgraph._values import ImportValue, PropertyValue, Ref


def resolve_export_name(name: Any) -> str | None:
    """Resolve an export name expression to a plain string.

    Handles a literal string, ``Fn::Sub`` (string or ``[string, vars]``) and
    ``Ref``; anything else cannot be resolved statically.

    Example:
        >>> resolve_export_name({"Fn::Sub": "${AWS::StackName}-VpcId"})
        '${AWS::StackName}-VpcId'

    """
    if isinstance(name, str):
        return name
    if isinstance(name, dict) and len(name) == 1:
        if "Fn::Sub" in name:
            sub = name["Fn::Sub"]
            if isinstance(sub, list) and sub and isinstance(sub[0], str):
                return sub[0]
            if isinstance(sub, str):
                return sub
        if isinstance(name.get("Ref"), str):
            return name["Ref"]
    return None


def _decode_get_att(arg: Any) -> Ref | None:
    if isinstance(arg, str):
        target, sep, attribute = arg.partition(".")
        if sep and target and attribute:
            return Ref(target, attribute)
        return None
    if isinstance(arg, list) and len(arg) >= 2 and all(isinstance(part, str) for part in arg):  # noqa: PLR2004
        return Ref(arg[0], ".".join(arg[1:]))
    return None


def decode_value(raw: Any) -> PropertyValue:  # noqa: PLR0911
    """Decode a raw template value into a property tree."""
    if isinstance(raw, dict):
        if len(raw) == 1:
            ((key, arg),) = raw.items()
            if key == "Ref" and isinstance(arg, str):
                return Ref(arg)
            if key == "Fn::GetAtt":
                ref = _decode_get_att(arg)
                if ref is not None:
                    return ref
            if key == "Fn::ImportValue":
                export_name = resolve_export_name(arg)
                if export_name is not None:
                    return ImportValue(export_name)
        return {str(key): decode_value(value) for key, value in raw.items()}
    if isinstance(raw, (list, tuple)):
        return [decode_value(item) for item in raw]
    if raw is None or isinstance(raw, (bool, int, float, str)):
        return raw
    # Dates and other scalars YAML may produce
    return str(raw)


def decode_tree(raw: dict[str, Any] | None) -> dict[str, PropertyValue]:
    if not raw:
        return {}
    return {str(key): decode_value(value) for key, value in raw.items()}


def encode_value(value: PropertyValue) -> Any:
    """Encode a property tree back into raw template intrinsics."""
    match value:
        case Ref(target, None):
            return {"Ref": target}
        case Ref(target, attribute):
            return {"Fn::GetAtt": [target, attribute]}
        case ImportValue(export_name):
            return {"Fn::ImportValue": export_name}
        case list():
            return [encode_value(item) for item in value]
        case dict():
            return {key: encode_value(item) for key, item in value.items()}
        case None | bool() | int() | float() | str():
            return value
        case _:
            msg = f"Unsupported property value type: {type(value)}"
            raise TypeError(msg)
