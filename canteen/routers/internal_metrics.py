from __future__ import annotations

from fastapi import APIRouter, Depends

from canteen.core.metrics import request_metrics
from canteen.deps import require_role
from canteen.models.user import User

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def endpoint_metrics(_user: User = Depends(require_role(["admin"]))):
    return {"endpoints": request_metrics.snapshot()}
