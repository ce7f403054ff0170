# certdesk/core/rbac.py
from fastapi import Depends, HTTPException, status

from certdesk.api.deps import CurrentUser, get_current_user
from certdesk.models.admin_role import ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_NAMES

def require_roles(*roles: str):
    unknown = set(roles) - set(ROLE_NAMES)
    if unknown:
        raise RuntimeError(f"Unknown role(s): {sorted(unknown)}")
    allowed = set(roles)
    def dep(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return current
    return dep

# gestão de registros: qualquer papel administrativo
require_admin = require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)
# aprovação/rejeição e exclusão
require_super_admin = require_roles(ROLE_SUPER_ADMIN)
