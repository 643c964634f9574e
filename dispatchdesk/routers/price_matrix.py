from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError

from dispatchdesk.core.authorization import require_accounting
from dispatchdesk.deps.auth import require_auth
from dispatchdesk.models.records import Actor
from dispatchdesk.schemas.price_matrix import PriceMatrixReplace, serialize_price_entry
from dispatchdesk.services import job_repository as repo

router = APIRouter(prefix="/price-matrix", tags=["Price Matrix"])


@router.get("")
def get_price_matrix(_actor: Actor = Depends(require_auth)):
    return [serialize_price_entry(e) for e in repo.load_price_matrix()]


@router.put("")
def replace_price_matrix(
    payload: PriceMatrixReplace,
    _actor: Actor = Depends(require_accounting),
):
    try:
        count = repo.replace_price_matrix([item.to_entry() for item in payload.items])
    except IntegrityError as exc:
        raise HTTPException(status_code=400, detail="Duplicate route key in price matrix") from exc
    return {"count": count}
