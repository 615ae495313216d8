from enum import Enum


class Role(str, Enum):
    admin = "admin"
    vendedor = "vendedor"


ADMIN_ROLES = {Role.admin}
