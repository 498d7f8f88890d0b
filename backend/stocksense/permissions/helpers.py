# Overview: Lookups over the operation definitions used by the policy and the CLI.

from .definitions import PERMISSION_DEFINITIONS

_DEFINITIONS_BY_CODE = {definition[0]: definition for definition in PERMISSION_DEFINITIONS}


def get_all_permission_codes():
    """Operation codes in definition order."""
    return list(_DEFINITIONS_BY_CODE)


def get_permissions_by_category(category):
    """Definition tuples for one category, in definition order."""
    return [d for d in PERMISSION_DEFINITIONS if d[3] == category]


def get_permission_definition(code):
    """Definition of an operation as a dict, or None for an unknown code."""
    definition = _DEFINITIONS_BY_CODE.get(code)
    if definition is None:
        return None
    code, name, description, category = definition
    return {"code": code, "name": name, "description": description, "category": category}


def validate_permission_code(code):
    return code in _DEFINITIONS_BY_CODE
