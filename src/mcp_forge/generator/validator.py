"""Validates generated server files for syntax and structural correctness."""

import ast
import json

import yaml

REQUIRED_FILES = ("README.md", ".env.example", "Dockerfile", "mcp-manifest.json")

# Source suffix -> dependency manifest the project needs to build
DEPENDENCY_MANIFESTS = {".py": "requirements.txt", ".ts": "package.json", ".go": "go.mod"}


def validate_python(files: dict[str, str]) -> dict[str, str]:
    """Check Python files for syntax errors.

    Returns dict of {path: error_message} for files with errors.
    """
    errors = {}
    for path, content in files.items():
        if not path.endswith(".py"):
            continue
        if not content.strip():
            continue
        try:
            ast.parse(content, filename=path)
        except SyntaxError as e:
            errors[path] = f"SyntaxError: {e.msg} (line {e.lineno})"
    return errors


def validate_yaml(files: dict[str, str]) -> dict[str, str]:
    """Check YAML files for format errors.

    Returns dict of {path: error_message} for files with errors.
    """
    errors = {}
    for path, content in files.items():
        if not path.endswith((".yaml", ".yml")):
            continue
        try:
            yaml.safe_load(content)
        except yaml.YAMLError as e:
            errors[path] = f"YAMLError: {e}"
    return errors


def validate_json(files: dict[str, str]) -> dict[str, str]:
    """Check JSON files (package.json, tsconfig.json, manifests) for format errors."""
    errors = {}
    for path, content in files.items():
        if not path.endswith(".json"):
            continue
        try:
            json.loads(content)
        except json.JSONDecodeError as e:
            errors[path] = f"JSONDecodeError: {e.msg} (line {e.lineno})"
    return errors


def validate_required(files: dict[str, str]) -> dict[str, str]:
    """Check that a project carries its documentation, manifests and dependency file."""
    errors = {}
    for path in REQUIRED_FILES:
        if path not in files:
            errors[path] = "Missing required file"
    for suffix, manifest in DEPENDENCY_MANIFESTS.items():
        if any(p.endswith(suffix) for p in files) and manifest not in files:
            errors[manifest] = f"Missing {manifest} for {suffix} sources"
    return errors


def validate_files(files: dict[str, str]) -> dict[str, str]:
    """Run all validations on generated files.

    Returns dict of {path: error_message} for all files with errors.
    """
    errors = {}
    errors.update(validate_python(files))
    errors.update(validate_yaml(files))
    errors.update(validate_json(files))
    errors.update(validate_required(files))
    return errors
