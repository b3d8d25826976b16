from __future__ import annotations

from sqlalchemy import select

from ..errors import InvalidState, NotFound, Unauthorized, ValidationError
from ..extensions import db
from ..models import PRIORITY_ORDER, EventStatus, WishlistItem, WishlistPriority
from ..policies import json_str
from .events import get_event, is_participant


def _sorted(items: list[WishlistItem]) -> list[WishlistItem]:
    # high -> low, newest first within a priority
    by_newest = sorted(items, key=lambda i: (i.created_at, i.id), reverse=True)
    return sorted(by_newest, key=lambda i: PRIORITY_ORDER[i.priority])


def get_wishlist(event_id: str, user_id: str) -> list[WishlistItem]:
    items = db.session.scalars(
        select(WishlistItem).where(WishlistItem.event_id == event_id, WishlistItem.user_id == user_id)
    ).all()
    return _sorted(list(items))


def add_wishlist_item(event_id: str, user, data: dict) -> WishlistItem:
    event = get_event(event_id)
    if event.status == EventStatus.COMPLETED:
        raise InvalidState("This event is completed")
    if not is_participant(event_id, user.id):
        raise Unauthorized("Only participants can add wishlist items")

    title = json_str(data, "item_title")
    if not title:
        raise ValidationError("item_title is required")

    try:
        priority = WishlistPriority(json_str(data, "priority") or WishlistPriority.MEDIUM.value)
    except ValueError as e:
        raise ValidationError("priority must be high, medium or low") from e

    item = WishlistItem(
        event_id=event_id,
        user_id=user.id,
        item_title=title,
        item_description=json_str(data, "item_description") or None,
        item_url=json_str(data, "item_url") or None,
        priority=priority,
    )
    db.session.add(item)
    db.session.commit()
    return item


def delete_wishlist_item(event_id: str, item_id: int, user) -> None:
    item = db.session.get(WishlistItem, item_id)
    if item is None or item.event_id != event_id:
        raise NotFound("Wishlist item not found")
    if item.user_id != user.id:
        raise Unauthorized("You can only remove your own wishlist items")

    db.session.delete(item)
    db.session.commit()
