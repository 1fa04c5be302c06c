# File: app/routers/productinfo.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from app.core.errors import Forbidden, NotFound
from app.core.policy import Action, authorize
from app.core.security import get_current_user
from app.db.session import get_db
from app.models.product_info import ProductInfo
from app.models.user import User, UserRole
from app.schemas.product import ProductCreate, ProductOut, ProductUpdate

router = APIRouter(prefix="/productinfo", tags=["productinfo"])


def _product_out(p: ProductInfo) -> ProductOut:
    out = ProductOut.model_validate(p)
    out.user_master_name = p.user_master.username if p.user_master else None
    return out


def _get_product(db: Session, product_id: int) -> ProductInfo:
    product = db.get(ProductInfo, product_id)
    if not product:
        raise NotFound("Product information not found")
    return product


def _products_of(db: Session, user_master_id: int):
    return (
        db.query(ProductInfo)
        .options(joinedload(ProductInfo.user_master))
        .filter(ProductInfo.user_master_id == user_master_id)
        .order_by(ProductInfo.created_at.desc(), ProductInfo.id.desc())
        .all()
    )


@router.get("/my")
def my_products(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    if me.role != UserRole.user_master:
        raise Forbidden("Only a User Master has product information")
    return {"products": [_product_out(p) for p in _products_of(db, me.id)]}


@router.get("/user-master/{user_master_id}")
def products_of_user_master(user_master_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.read, ProductInfo(user_master_id=user_master_id))
    return {"products": [_product_out(p) for p in _products_of(db, user_master_id)]}


@router.get("")
def list_products(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.list_all, ProductInfo)
    rows = (
        db.query(ProductInfo)
        .options(joinedload(ProductInfo.user_master))
        .order_by(ProductInfo.created_at.desc(), ProductInfo.id.desc())
        .all()
    )
    return {"products": [_product_out(p) for p in rows]}


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    product = _get_product(db, product_id)
    authorize(me, Action.read, product)
    return {"product": _product_out(product)}


@router.post("")
def create_product(body: ProductCreate, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    product = ProductInfo(user_master_id=me.id, **body.model_dump())
    authorize(me, Action.create, product, "Only a User Master can register product information")
    db.add(product)
    db.commit()
    db.refresh(product)
    return {"message": "Product information created", "product": _product_out(product)}


@router.put("/{product_id}")
def update_product(
    product_id: int,
    body: ProductUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    product = _get_product(db, product_id)
    authorize(me, Action.update, product, "You cannot modify this product information")
    for key, value in body.model_dump(exclude_unset=True).items():
        if key in ("product_name", "monitoring_solution") and value is None:
            continue
        setattr(product, key, value)
    product.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(product)
    return {"message": "Product information updated", "product": _product_out(product)}


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    product = _get_product(db, product_id)
    authorize(me, Action.delete, product, "You cannot delete this product information")
    db.delete(product)
    db.commit()
    return {"message": "Product information deleted"}
