from fastapi import APIRouter, Depends

from medibook.auth.dependencies import get_current_principal
from medibook.auth.principal import Principal

router = APIRouter(tags=['auth'])


@router.get("/me")
def me(current_principal: Principal = Depends(get_current_principal)):
    return {"id": current_principal.id, "role": current_principal.role.value}
