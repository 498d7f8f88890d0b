"""
Access policy tests.

Verifies:
- the default role table
- unknown roles and operations are denied
- overrides from a mapping, a JSON file, or app config
- require() raises Forbidden naming the missing operation
"""

import json

import pytest

from stocksense.errors import Forbidden
from stocksense.permissions import (
    AccessPolicy,
    Actor,
    Operation,
    PermissionCategory,
    Role,
    allowed,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
    validate_permission_code,
)


class TestDefaultTable:

    @pytest.mark.parametrize(
        "role, operation, expected",
        [
            (Role.ADMIN, Operation.MANAGE_USERS, True),
            (Role.ADMIN, Operation.RECORD_SALE, True),
            (Role.ADMIN, Operation.MANAGE_CATALOG, False),
            (Role.ADMIN, Operation.VIEW_ANALYTICS_BASIC, False),
            (Role.MANAGER, Operation.MANAGE_CATALOG, True),
            (Role.MANAGER, Operation.VIEW_ANALYTICS_ADVANCED, True),
            (Role.MANAGER, Operation.MANAGE_LOW_STOCK_ALERTS, True),
            (Role.MANAGER, Operation.MANAGE_USERS, False),
            (Role.STAFF, Operation.RECORD_SALE, True),
            (Role.STAFF, Operation.VIEW_ANALYTICS_BASIC, True),
            (Role.STAFF, Operation.VIEW_ANALYTICS_ADVANCED, False),
            (Role.STAFF, Operation.MANAGE_CATALOG, False),
            (Role.STAFF, Operation.MANAGE_LOW_STOCK_ALERTS, False),
        ],
    )
    def test_role_matrix(self, role, operation, expected):
        assert allowed(role, operation) is expected

    def test_role_strings_accepted_in_any_case(self):
        assert allowed("manager", Operation.MANAGE_CATALOG)
        assert allowed("MANAGER", Operation.MANAGE_CATALOG)
        assert allowed("Manager", Operation.MANAGE_CATALOG)

    def test_unknown_role_denied(self):
        assert allowed("Cashier", Operation.RECORD_SALE) is False
        assert allowed(None, Operation.RECORD_SALE) is False

    def test_unknown_operation_denied(self):
        assert allowed(Role.ADMIN, "launch-rockets") is False

    def test_operations_for(self):
        policy = AccessPolicy.default()

        assert policy.operations_for(Role.STAFF) == frozenset(
            {Operation.RECORD_SALE, Operation.VIEW_SALES, Operation.VIEW_ANALYTICS_BASIC}
        )
        assert policy.operations_for("nobody") == frozenset()


class TestRequire:

    def test_raises_forbidden_with_required_permission(self):
        policy = AccessPolicy.default()

        with pytest.raises(Forbidden) as exc_info:
            policy.require(Actor(user_id=3, role=Role.STAFF), Operation.MANAGE_CATALOG)

        assert exc_info.value.http_status == 403
        assert exc_info.value.to_dict()["details"] == {"required_permission": "manage-catalog"}

    def test_allowed_is_silent(self):
        AccessPolicy.default().require(Actor.of(1, "Admin"), Operation.MANAGE_USERS)


class TestOverrides:

    def test_from_mapping_replaces_table(self):
        policy = AccessPolicy.from_mapping({"Staff": [Operation.VIEW_SALES]})

        assert policy.allowed(Role.STAFF, Operation.VIEW_SALES)
        assert not policy.allowed(Role.STAFF, Operation.RECORD_SALE)
        # roles missing from the override have no operations
        assert not policy.allowed(Role.ADMIN, Operation.MANAGE_USERS)

    def test_unknown_code_fails_fast(self):
        with pytest.raises(ValueError, match="Unknown operation"):
            AccessPolicy.from_mapping({"Staff": ["record-sales"]})

    def test_unknown_role_fails_fast(self):
        with pytest.raises(ValueError, match="Unknown role"):
            AccessPolicy.from_mapping({"Cashier": [Operation.RECORD_SALE]})

    def test_from_file(self, tmp_path):
        path = tmp_path / "roles.json"
        path.write_text(json.dumps({"Manager": [Operation.RECORD_SALE, Operation.VIEW_SALES]}))

        policy = AccessPolicy.from_file(str(path))

        assert policy.to_dict() == {"Manager": ["record-sale", "view-sales"]}

    def test_from_file_requires_object(self, tmp_path):
        path = tmp_path / "roles.json"
        path.write_text("[]")

        with pytest.raises(ValueError):
            AccessPolicy.from_file(str(path))

    def test_from_config_precedence(self, tmp_path):
        path = tmp_path / "roles.json"
        path.write_text(json.dumps({"Admin": [Operation.MANAGE_USERS]}))

        from_mapping = AccessPolicy.from_config(
            {"ROLE_PERMISSIONS": {"Staff": [Operation.VIEW_SALES]}, "ROLE_POLICY_FILE": str(path)}
        )
        from_file = AccessPolicy.from_config({"ROLE_POLICY_FILE": str(path)})
        default = AccessPolicy.from_config({})

        assert list(from_mapping.to_dict()) == ["Staff"]
        assert list(from_file.to_dict()) == ["Admin"]
        assert default.to_dict() == AccessPolicy.default().to_dict()


class TestDefinitions:

    def test_every_operation_is_defined(self):
        codes = set(get_all_permission_codes())

        assert codes == {
            value for key, value in vars(Operation).items() if not key.startswith("_")
        }

    def test_definition_lookup(self):
        definition = get_permission_definition(Operation.RECORD_SALE)

        assert definition["category"] == PermissionCategory.SALES
        assert get_permission_definition("missing") is None

    def test_by_category(self):
        analytics = get_permissions_by_category(PermissionCategory.ANALYTICS)

        assert [perm[0] for perm in analytics] == [
            Operation.VIEW_ANALYTICS_BASIC,
            Operation.VIEW_ANALYTICS_ADVANCED,
        ]

    def test_validate_code(self):
        assert validate_permission_code(Operation.MANAGE_CATALOG)
        assert not validate_permission_code("manage_catalog")
