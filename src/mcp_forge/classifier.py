"""Capability classification and operation naming.

GET and HEAD are side-effect-free reads and become MCP resources;
POST, PUT, PATCH and DELETE become tools. The result is only a default:
users may override ``mcp_type`` per endpoint before generation.

Operation names follow a verb_resource pattern:
  GET    /pets           -> list_pets
  GET    /pets/{id}      -> get_pet
  POST   /pets           -> create_pet
  PUT    /pets/{id}      -> update_pet
  DELETE /pets/{id}      -> delete_pet
  GET    /users/{id}/pets -> list_users_pets
"""

import re

RESOURCE = "resource"
TOOL = "tool"

_KINDS: dict[str, str] = {
    "GET": RESOURCE,
    "HEAD": RESOURCE,
    "POST": TOOL,
    "PUT": TOOL,
    "PATCH": TOOL,
    "DELETE": TOOL,
}

_METHOD_VERBS: dict[str, str] = {
    "get": "list",
    "head": "head",
    "post": "create",
    "put": "update",
    "patch": "update",
    "delete": "delete",
}


def classify(method: str) -> str:
    """Return ``"resource"`` or ``"tool"`` for an HTTP method."""
    key = str(getattr(method, "value", method)).upper()
    try:
        return _KINDS[key]
    except KeyError:
        raise ValueError(f"Cannot classify HTTP method: {method!r}") from None


def _camel_to_snake(name: str) -> str:
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s1).lower()


def to_identifier(text: str) -> str:
    """Sanitize arbitrary text into a snake_case identifier."""
    name = _camel_to_snake(text)
    name = re.sub(r"[^a-z0-9]+", "_", name.lower())
    name = name.strip("_")
    if not name:
        return "op"
    if name[0].isdigit():
        name = f"op_{name}"
    return name


def _singularize(word: str) -> str:
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("sses", "xes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss") and len(word) > 1:
        return word[:-1]
    return word


def operation_name(method: str, path: str) -> str:
    """Build a deterministic snake_case operation name from method and path."""
    method_lower = str(getattr(method, "value", method)).lower()
    segments = [s for s in path.split("/") if s]
    literal = [to_identifier(s) for s in segments if "{" not in s]
    literal = [s for s in literal if s != "op"]
    ends_with_param = bool(segments) and "{" in segments[-1]

    if method_lower == "get":
        verb = "get" if ends_with_param else "list"
    else:
        verb = _METHOD_VERBS.get(method_lower, to_identifier(method_lower))

    if not literal:
        return f"{verb}_root"

    if len(literal) == 1 and verb in ("get", "create", "update", "delete"):
        if verb == "create" or ends_with_param:
            return f"{verb}_{_singularize(literal[0])}"
    return f"{verb}_{'_'.join(literal)}"
