"""
Company Roles and Permissions Configuration
Every membership row (user_company_roles) carries one of the roles below.
Route dependencies translate the caller's role into permission names from this matrix.
"""

COMPANY_ROLES = ["Admin", "Member", "Viewer"]

DEFAULT_ROLE = "Member"

# Define resources and their actions
MODULES = {
    "companies": {
        "resource": "companies",
        "actions": ["read", "update"],
        "description": "Company workspace"
    },
    "members": {
        "resource": "members",
        "actions": ["read", "manage"],
        "description": "Company membership"
    },
    "invitations": {
        "resource": "invitations",
        "actions": ["create", "read", "cancel"],
        "description": "Email invitations and access codes"
    },
    "boards": {
        "resource": "boards",
        "actions": ["create", "read"],
        "description": "Boards of a company"
    },
    "columns": {
        "resource": "columns",
        "actions": ["create", "read"],
        "description": "Typed board columns"
    },
    "items": {
        "resource": "items",
        "actions": ["create", "read"],
        "description": "Board items (rows)"
    },
    "cells": {
        "resource": "cells",
        "actions": ["read", "update"],
        "description": "Item values (cells)"
    }
}

# Actions granted per role; "*" means every action of every resource
ROLE_GRANTS = {
    "Admin": {
        "actions": "*",
        "description": "Full control of the company, its members and boards"
    },
    "Member": {
        "actions": {
            "companies": ["read"],
            "members": ["read"],
            "boards": ["create", "read"],
            "columns": ["create", "read"],
            "items": ["create", "read"],
            "cells": ["read", "update"],
        },
        "description": "Works on boards, cannot manage people"
    },
    "Viewer": {
        "actions": {
            "companies": ["read"],
            "members": ["read"],
            "boards": ["read"],
            "columns": ["read"],
            "items": ["read"],
            "cells": ["read"],
        },
        "description": "Read-only access to boards"
    }
}


def get_permission_matrix():
    """
    Returns a dictionary with all permissions and the permissions held by each role
    Format: {
        "permissions": [
            {"name": "boards:create", "resource": "boards", "action": "create", "description": "..."},
            ...
        ],
        "roles": {
            "Admin": ["boards:create", ...],
            "Member": [...],
            "Viewer": [...]
        }
    }
    """
    permissions = []
    for module_config in MODULES.values():
        resource = module_config["resource"]
        for action in module_config["actions"]:
            permissions.append({
                "name": f"{resource}:{action}",
                "resource": resource,
                "action": action,
                "description": f"{action.capitalize()} {module_config['description'].lower()}"
            })

    roles = {}
    for role, grant in ROLE_GRANTS.items():
        if grant["actions"] == "*":
            role_permissions = [p["name"] for p in permissions]
        else:
            role_permissions = [
                f"{resource}:{action}"
                for resource, actions in grant["actions"].items()
                for action in actions
                if action in MODULES[resource]["actions"]
            ]
        roles[role] = sorted(role_permissions)

    return {
        "permissions": permissions,
        "roles": roles
    }


# Export the matrix for use in dependencies
PERMISSION_MATRIX = get_permission_matrix()


def role_permissions(role: str) -> list:
    return PERMISSION_MATRIX["roles"].get(role, [])


def role_has_permission(role: str, permission: str) -> bool:
    return permission in role_permissions(role)
