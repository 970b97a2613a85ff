from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.money import money_out, to_money
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.product import Product
from workshop_ledger.models.user import User
from workshop_ledger.schemas.common import pagination_meta
from workshop_ledger.schemas.product import ProductCreate, ProductListOut, ProductOut, ProductUpdate
from workshop_ledger.services.audit_service import log_audit_event
from workshop_ledger.services.stock_ledger_service import record_initial_stock

router = APIRouter(prefix="/products", tags=["products"])
MAX_PRODUCT_PAGE_SIZE = 500


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.execute(select(Product).where(Product.id == product_id)).scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def product_out(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        name=product.name,
        category=product.category,
        estimated_price=money_out(product.estimated_price),
        stock=product.stock,
        image_url=product.image_url,
        created_by=product.created_by,
        modified_by=product.modified_by,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


@router.get(
    "",
    response_model=ProductListOut,
    summary="List products",
    responses={
        200: {
            "description": "Paginated products",
            "content": {
                "application/json": {
                    "example": {
                        "items": [
                            {
                                "id": 1,
                                "name": "Oak dining table",
                                "category": "Tables",
                                "estimated_price": 450.0,
                                "stock": 12,
                                "image_url": None,
                                "created_by": 1,
                                "modified_by": 1,
                                "created_at": "2026-10-19T09:00:00Z",
                                "updated_at": "2026-10-19T09:30:00Z",
                            }
                        ],
                        "pagination": {
                            "total": 1,
                            "limit": 50,
                            "offset": 0,
                            "count": 1,
                            "has_next": False,
                        },
                    }
                }
            },
        },
        **error_responses(401, 422, 500),
    },
)
def list_products(
    category: str | None = Query(default=None, description="Exact category match, case-insensitive"),
    q: str | None = Query(default=None, description="Substring search on product name"),
    limit: int = Query(default=50, ge=1, le=MAX_PRODUCT_PAGE_SIZE, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    count_stmt = select(func.count(Product.id))
    stmt = select(Product)
    if category and category.strip():
        condition = func.lower(Product.category) == category.strip().lower()
        count_stmt = count_stmt.where(condition)
        stmt = stmt.where(condition)
    if q and q.strip():
        condition = Product.name.ilike(f"%{q.strip()}%")
        count_stmt = count_stmt.where(condition)
        stmt = stmt.where(condition)

    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        stmt.order_by(Product.created_at.desc(), Product.id.desc()).offset(offset).limit(limit)
    ).scalars().all()
    items = [product_out(row) for row in rows]
    return ProductListOut(
        items=items,
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/{product_id}",
    response_model=ProductOut,
    summary="Get product",
    responses=error_responses(401, 404, 422, 500),
)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return product_out(get_product_or_404(db, product_id))


@router.post(
    "",
    response_model=ProductOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create product",
    description="A non-zero opening stock is logged as an 'add' movement with reason 'Initial stock'.",
    responses=error_responses(400, 401, 422, 500),
)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    product = Product(
        name=payload.name,
        category=payload.category,
        estimated_price=to_money(payload.estimated_price),
        stock=payload.stock,
        image_url=payload.image_url,
        created_by=actor.id,
        modified_by=actor.id,
    )
    db.add(product)
    db.flush()
    record_initial_stock(db, product=product, quantity=payload.stock, actor_user_id=actor.id)
    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="product.create",
        target_type="product",
        target_id=product.id,
        metadata_json={"name": product.name, "category": product.category, "stock": product.stock},
    )
    db.commit()
    db.refresh(product)
    return product_out(product)


@router.patch(
    "/{product_id}",
    response_model=ProductOut,
    summary="Update product details",
    description="Stock is not writable here; use stock movements or location stock.",
    responses=error_responses(401, 404, 422, 500),
)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    product = get_product_or_404(db, product_id)

    changed: dict[str, object] = {}
    if payload.name is not None:
        product.name = payload.name
        changed["name"] = payload.name
    if payload.category is not None:
        product.category = payload.category
        changed["category"] = payload.category
    if payload.estimated_price is not None:
        product.estimated_price = to_money(payload.estimated_price)
        changed["estimated_price"] = float(product.estimated_price)
    if "image_url" in payload.model_fields_set:
        product.image_url = payload.image_url
        changed["image_url"] = payload.image_url

    if changed:
        product.modified_by = actor.id
        log_audit_event(
            db,
            actor_user_id=actor.id,
            action="product.update",
            target_type="product",
            target_id=product.id,
            metadata_json=changed,
        )
    db.commit()
    db.refresh(product)
    return product_out(product)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete product",
    description="Also deletes the product's stock movements, location stock and workshop orders.",
    responses=error_responses(401, 404, 422, 500),
)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    product = get_product_or_404(db, product_id)
    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="product.delete",
        target_type="product",
        target_id=product.id,
        metadata_json={"name": product.name, "stock": product.stock},
    )
    db.delete(product)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
