from typing import Any, Dict, List

NAME_FIELD = "applicationName"
LOGO_FIELD = "logo"


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def validate_export(data: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.

    Expected shape: {"data": {"applications": [{"applicationName": ..., "logo": ...}]}}
    """
    if not isinstance(data, dict):
        return ["Top level must be an object"]
    inner = data.get("data")
    if not isinstance(inner, dict):
        return ["Missing required object: data"]
    apps = inner.get("applications")
    if not isinstance(apps, list):
        return ["Field 'data.applications' must be a list"]

    errors: List[str] = []
    for i, app in enumerate(apps):
        errors.extend(validate_application(app, i))
    return errors


def validate_application(app: Dict[str, Any], index: int = 0) -> List[str]:
    where = f"data.applications[{index}]"
    if not isinstance(app, dict):
        return [f"{where} must be an object"]
    errors = []
    if NAME_FIELD not in app:
        errors.append(f"{where}: missing required field: {NAME_FIELD}")
    elif not _is_non_empty_str(app[NAME_FIELD]):
        errors.append(f"{where}: field '{NAME_FIELD}' must be a non-empty string")
    if LOGO_FIELD not in app:
        errors.append(f"{where}: missing required field: {LOGO_FIELD}")
    elif not isinstance(app[LOGO_FIELD], str):
        errors.append(f"{where}: field '{LOGO_FIELD}' must be a string")
    return errors
