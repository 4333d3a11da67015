"""
Administrative endpoints (oracle registration, contract state, audit integrity)
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Header

from .dependencies import get_lending_system, raise_for_error
from .schemas import RegisterOracleRequest, ContractStateModel
from ..system import LendingSystem


router = APIRouter()


@router.post("/oracle")
async def register_oracle(
    request: RegisterOracleRequest,
    x_caller: Optional[str] = Header(None),
    system: LendingSystem = Depends(get_lending_system)
) -> Dict[str, Any]:
    """Register or replace the impact oracle address"""
    raise_for_error(system.set_oracle_contract(request.address, caller=x_caller))
    return {
        "oracle_contract": request.address,
        "message": "Oracle contract registered"
    }


@router.get("/state", response_model=ContractStateModel)
async def get_contract_state(system: LendingSystem = Depends(get_lending_system)):
    """Current contract parameters and loan count"""
    return ContractStateModel(**system.get_contract_state())


@router.get("/audit/verify")
async def verify_audit_trail(system: LendingSystem = Depends(get_lending_system)) -> Dict[str, Any]:
    """Verify the hash chain of the audit trail"""
    return system.verify_audit_trail()
