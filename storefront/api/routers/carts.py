#storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.data.database import Database, get_database
from storefront.domain.errors import (
    CartError,
    InsufficientStock,
    NotFound,
    TransactionFailure,
    ValidationError,
)
from storefront.domain.schemas import (
    AddToCart,
    CartOwner,
    CartRead,
    GuestCart,
    MergeGuestCart,
    RemoveFromCart,
    UpdateCartItem,
    UpdateQuantityIn,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(database: Database = Depends(get_database)) -> CartService:
    return CartService(database)


def get_owner(
    user_id: str | None = Query(None),
    guest_id: str | None = Query(None),
) -> CartOwner:
    #dokladnie jeden z user_id / guest_id
    if bool(user_id) == bool(guest_id):
        raise HTTPException(status_code=400, detail="Provide exactly one of user_id or guest_id")
    return CartOwner.user(user_id) if user_id else CartOwner.guest(guest_id)


def _http_error(e: CartError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InsufficientStock):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, TransactionFailure):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=CartRead)
def get_cart(
    owner: CartOwner = Depends(get_owner),
    svc: CartService = Depends(get_service),
):
    cart = svc.get_cart(owner)
    if not cart:
        raise HTTPException(status_code=404, detail="No active cart")
    return cart


@router.post("/items", response_model=CartRead)
def add_item(
    payload: AddToCart,
    owner: CartOwner = Depends(get_owner),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.add_item(payload, owner)
    except CartError as e:
        raise _http_error(e)


@router.post("/guest/items", response_model=CartRead)
def add_guest_item(payload: GuestCart, svc: CartService = Depends(get_service)):
    try:
        return svc.add_item_to_guest_cart(payload)
    except CartError as e:
        raise _http_error(e)


@router.patch("/items/{item_id}", response_model=CartRead)
def update_item(
    item_id: str,
    payload: UpdateQuantityIn,
    svc: CartService = Depends(get_service),
):
    try:
        return svc.update_item(UpdateCartItem(item_id=item_id, quantity=payload.quantity))
    except CartError as e:
        raise _http_error(e)


@router.delete("/items/{item_id}", response_model=CartRead)
def remove_item(item_id: str, svc: CartService = Depends(get_service)):
    try:
        return svc.remove_item(RemoveFromCart(item_id=item_id))
    except CartError as e:
        raise _http_error(e)


@router.delete("", response_model=CartRead)
def clear_cart(
    owner: CartOwner = Depends(get_owner),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.clear_cart(owner)
    except CartError as e:
        raise _http_error(e)


@router.post("/merge", response_model=CartRead)
def merge_guest_cart(payload: MergeGuestCart, svc: CartService = Depends(get_service)):
    try:
        return svc.merge_guest_cart(payload)
    except CartError as e:
        raise _http_error(e)
