ALLOWED_DISPLAY_ROLES = {"SUPER_ADMIN", "ADMIN", "STUDENT"}

# API role names (lower-case) <-> stored role names
ROLE_BY_API_NAME = {
    "student": "STUDENT",
    "admin": "ADMIN",
    "super_admin": "SUPER_ADMIN",
}

_PRECEDENCE = ("SUPER_ADMIN", "ADMIN", "STUDENT")


def filter_role_names(roles):
    names = []
    for role in roles or []:
        name = role if isinstance(role, str) else getattr(role, "name", None)
        if name in ALLOWED_DISPLAY_ROLES:
            names.append(name)
    return names


def primary_role(roles):
    """Highest role as its API name, e.g. 'admin'."""
    names = set(filter_role_names(roles))
    for name in _PRECEDENCE:
        if name in names:
            return name.lower()
    return None
